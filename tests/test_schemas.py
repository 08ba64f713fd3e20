import pytest
from pydantic import ValidationError

from coinpayments.schemas.webhooks import (
    ClientWebhookEvent,
    ClientWebhookPayload,
    VerificationResult,
    WalletWebhookEvent,
    WalletWebhookPayload,
    WebhookHeaders,
    filter_events,
)


def test_event_wire_names():
    assert ClientWebhookEvent.INVOICE_CREATED.value == "invoiceCreated"
    assert ClientWebhookEvent.INVOICE_COMPLETED.value == "invoiceCompleted"
    assert WalletWebhookEvent.UTXO_EXTERNAL_RECEIVE.value == "utxoExternalReceive"
    assert WalletWebhookEvent.EXTERNAL_SPEND.value == "externalSpend"
    assert ClientWebhookEvent("paymentTimedOut") is ClientWebhookEvent.PAYMENT_TIMED_OUT


def test_filter_events():
    events = [
        ClientWebhookEvent.INVOICE_CREATED,
        ClientWebhookEvent.INVOICE_PAID,
        ClientWebhookEvent.INVOICE_CREATED,
    ]
    assert filter_events(events, ClientWebhookEvent.INVOICE_CREATED) == [
        ClientWebhookEvent.INVOICE_CREATED,
        ClientWebhookEvent.INVOICE_CREATED,
    ]
    assert filter_events(events, ClientWebhookEvent.INVOICE_CANCELLED) == []


def test_webhook_headers_immutable():
    headers = WebhookHeaders(signature=b"\x01", timestamp=1, raw_timestamp="1")
    with pytest.raises(ValidationError):
        headers.timestamp = 2


def test_verification_result_truthiness():
    assert VerificationResult(valid=True)
    assert not VerificationResult(valid=False)


def test_client_payload_parses(client_payload):
    payload = ClientWebhookPayload.model_validate_json(client_payload)
    assert payload.event is ClientWebhookEvent.INVOICE_COMPLETED
    assert payload.payment_data.confirmations == 3


def test_wallet_payload_rejects_negative_confirmations(wallet_payload):
    payload = WalletWebhookPayload.model_validate_json(wallet_payload)
    with pytest.raises(ValidationError):
        WalletWebhookPayload(**{**payload.model_dump(), "confirmations": -1})
