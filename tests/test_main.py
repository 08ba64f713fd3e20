import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from coinpayments.core.config import Settings


def test_health_check(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data == {"status": "ok"}
    # secrets never leave the process
    assert "whsec_test" not in response.text


def test_settings_from_environment(settings: Settings):
    assert settings.webhook_secret == "whsec_test"
    assert settings.webhook_tolerance_seconds == 300
    assert settings.signature_algorithm == "sha512"
    assert settings.signature_encoding == "hex"
    assert settings.sign_headers is False


def test_settings_rejects_unknown_algorithm():
    with pytest.raises(ValidationError):
        Settings(webhook_secret="s", signature_algorithm="md5")


def test_settings_rejects_negative_tolerance():
    with pytest.raises(ValidationError):
        Settings(webhook_secret="s", webhook_tolerance_seconds=-1)


def test_settings_normalizes_algorithm():
    assert Settings(webhook_secret="s", signature_algorithm="SHA256").signature_algorithm == "sha256"
