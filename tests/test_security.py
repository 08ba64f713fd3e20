from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from coinpayments.middleware.body_size import BodySizeLimitMiddleware


def test_payload_too_big(client):
    large_payload = {"data": "x" * (1024 * 1024 + 1)}

    response = client.post("/webhooks/client", json=large_payload)
    assert response.status_code == 413
    assert response.json() == {"detail": "Payload too large"}


def test_custom_body_limit():
    app = FastAPI()
    app.add_middleware(BodySizeLimitMiddleware, max_body_size=10)

    @app.post("/echo")
    async def echo():
        return {"status": "ok"}

    client = TestClient(app)
    assert client.post("/echo", content=b"x" * 10).status_code == 200
    response = client.post("/echo", content=b"x" * 11)
    assert response.status_code == 413


def test_get_requests_not_limited(client):
    response = client.get("/health")
    assert response.status_code == 200


def _limited_app(max_body_size: int) -> FastAPI:
    app = FastAPI()
    app.add_middleware(BodySizeLimitMiddleware, max_body_size=max_body_size)

    @app.post("/echo")
    async def echo():
        return {"status": "ok"}

    @app.post("/length")
    async def length(request: Request):
        return {"length": len(await request.body())}

    return app


def _chunks(total: int, size: int = 7):
    sent = 0
    while sent < total:
        chunk = b"x" * min(size, total - sent)
        sent += len(chunk)
        yield chunk


def test_streamed_body_over_limit():
    client = TestClient(_limited_app(10))
    response = client.post("/echo", content=_chunks(100))
    assert response.status_code == 413
    assert response.json() == {"detail": "Payload too large"}


def test_streamed_body_within_limit_reaches_handler():
    client = TestClient(_limited_app(10))
    response = client.post("/length", content=_chunks(10))
    assert response.status_code == 200
    assert response.json() == {"length": 10}


def test_invalid_content_length():
    client = TestClient(_limited_app(10))
    response = client.post("/echo", content=b"x", headers={"Content-Length": "abc"})
    assert response.status_code == 400
