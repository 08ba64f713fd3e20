import logging
import time
from typing import Type

from fastapi import Depends, FastAPI, HTTPException, Request, status
from pydantic import BaseModel, ValidationError

from coinpayments.core.config import Settings, get_settings
from coinpayments.middleware.body_size import BodySizeLimitMiddleware
from coinpayments.schemas.webhooks import (
    ClientWebhookPayload,
    WalletWebhookPayload,
    WebhookHeaders,
)
from coinpayments.services import webhook_verify

settings = get_settings()
logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

app = FastAPI(
    title="CoinPayments Webhook Receiver",
    description="Verifies and accepts CoinPayments webhook notifications",
    version="1.0.0",
)

app.add_middleware(BodySizeLimitMiddleware, max_body_size=settings.max_body_size)


# ---------- dependencies ----------
def current_time() -> int:
    return int(time.time())


async def verified_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    now: int = Depends(current_time),
) -> tuple[WebhookHeaders, bytes]:
    # verify the body exactly as received, before any JSON parsing
    raw = await request.body()
    try:
        headers = webhook_verify.verify_request(
            settings.webhook_secret,
            request.headers,
            raw,
            now=now,
            tolerance_seconds=settings.webhook_tolerance_seconds,
            algorithm=settings.signature_algorithm,
            encoding=settings.signature_encoding,
            timestamp_format=settings.timestamp_format,
            sign_headers=settings.sign_headers,
        )
    except webhook_verify.WebhookParseError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except webhook_verify.WebhookAuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail=e.reason.value
        )
    return headers, raw


def _parse_payload(raw: bytes, model: Type[BaseModel]):
    if not raw:
        raise HTTPException(status_code=400, detail="Empty JSON body")
    try:
        return model.model_validate_json(raw)
    except ValidationError as ve:
        # model_validate_json reports bad JSON as a json_invalid error
        if any(err["type"] == "json_invalid" for err in ve.errors()):
            raise HTTPException(status_code=400, detail="Invalid JSON payload")
        raise HTTPException(
            status_code=400,
            detail=ve.errors(include_url=False, include_context=False, include_input=False),
        )


@app.get("/health", include_in_schema=False)
async def health():
    return {"status": "ok"}


# ---------- webhooks ----------
@app.post("/webhooks/client")
async def client_webhook(verified: tuple = Depends(verified_webhook)):
    headers, raw = verified
    payload: ClientWebhookPayload = _parse_payload(raw, ClientWebhookPayload)
    logger.info(
        f"Client webhook {payload.event.value} for invoice {payload.invoice_id} "
        f"(client={headers.client_id})"
    )
    return {"status": "received", "event": payload.event.value}


@app.post("/webhooks/wallet")
async def wallet_webhook(verified: tuple = Depends(verified_webhook)):
    headers, raw = verified
    payload: WalletWebhookPayload = _parse_payload(raw, WalletWebhookPayload)
    logger.info(
        f"Wallet webhook {payload.event.value} for wallet {payload.wallet_id} "
        f"transaction {payload.transaction_id} (client={headers.client_id})"
    )
    return {"status": "received", "event": payload.event.value}
