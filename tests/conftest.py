import json
import os

import pytest
from fastapi.testclient import TestClient

# Set test environment variables
os.environ.update(
    {
        "WEBHOOK_SECRET": "whsec_test",
        "WEBHOOK_TOLERANCE_SECONDS": "300",
        "MAX_BODY_SIZE": "1048576",
    }
)

from coinpayments.core.config import Settings, get_settings

# Import app modules after setting environment variables
from coinpayments.main import app, current_time

FIXED_NOW = 1_700_000_000


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def now() -> int:
    return FIXED_NOW


@pytest.fixture
def client(now):
    app.dependency_overrides[current_time] = lambda: now
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def client_payload() -> bytes:
    payload = {
        "event": "invoiceCompleted",
        "invoice_id": "inv_123",
        "merchant_id": "merchant_456",
        "amount": "10.00",
        "currency": "USD",
        "status": "completed",
        "created_at": "2023-11-14T22:13:20Z",
        "payment_data": {
            "currency_id": "4",
            "address": "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa",
            "amount": "0.00025",
            "txid": "abc123",
            "confirmations": 3,
        },
    }
    return json.dumps(payload).encode()


@pytest.fixture
def wallet_payload() -> bytes:
    payload = {
        "event": "utxoExternalReceive",
        "wallet_id": "wallet_1",
        "wallet_label": "my-btc-wallet",
        "address": "bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4",
        "currency_id": "4",
        "transaction_id": "tx_789",
        "amount": "0.5",
        "confirmations": 1,
        "status": "confirmed",
        "created_at": "2023-11-14T22:13:20Z",
    }
    return json.dumps(payload).encode()
