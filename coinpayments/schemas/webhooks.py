from enum import Enum
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field


class FailureReason(str, Enum):
    MISSING_FIELD = "missing_field"
    MALFORMED_ENCODING = "malformed_encoding"
    SIGNATURE_MISMATCH = "signature_mismatch"
    TIMESTAMP_EXPIRED = "timestamp_expired"
    TIMESTAMP_IN_FUTURE = "timestamp_in_future"


class WebhookHeaders(BaseModel):
    """Authentication headers of one inbound webhook request."""

    model_config = ConfigDict(frozen=True)

    signature: bytes = Field(..., description="Decoded signature bytes")
    timestamp: int = Field(..., description="Seconds since epoch")
    raw_timestamp: str = Field(..., description="Timestamp header as received")
    client_id: Optional[str] = None
    event_id: Optional[str] = None


class VerificationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    valid: bool
    reason: Optional[FailureReason] = None

    def __bool__(self) -> bool:
        return self.valid


class ClientWebhookEvent(str, Enum):
    """Invoice events delivered to client webhooks."""

    INVOICE_CREATED = "invoiceCreated"
    # payment detected with at least one confirmation
    INVOICE_PENDING = "invoicePending"
    INVOICE_PAID = "invoicePaid"
    # funds reflected in the merchant balance
    INVOICE_COMPLETED = "invoiceCompleted"
    INVOICE_CANCELLED = "invoiceCancelled"
    INVOICE_TIMED_OUT = "invoiceTimedOut"
    PAYMENT_CREATED = "paymentCreated"
    PAYMENT_TIMED_OUT = "paymentTimedOut"


class WalletWebhookEvent(str, Enum):
    """Transaction events delivered to wallet and address webhooks."""

    INTERNAL_RECEIVE = "internalReceive"
    UTXO_EXTERNAL_RECEIVE = "utxoExternalReceive"
    ACCOUNT_BASED_EXTERNAL_RECEIVE = "accountBasedExternalReceive"
    INTERNAL_SPEND = "internalSpend"
    EXTERNAL_SPEND = "externalSpend"
    SAME_USER_RECEIVE = "sameUserReceive"
    ACCOUNT_BASED_EXTERNAL_TOKEN_RECEIVE = "accountBasedExternalTokenReceive"
    ACCOUNT_BASED_TOKEN_SPEND = "accountBasedTokenSpend"


class PaymentData(BaseModel):
    currency_id: str
    address: str
    amount: str
    txid: Optional[str] = None
    confirmations: Optional[int] = Field(default=None, ge=0)
    first_seen: Optional[str] = None


class ClientWebhookPayload(BaseModel):
    event: ClientWebhookEvent = Field(..., description="Invoice event type")
    invoice_id: str
    merchant_id: str
    amount: str
    currency: str
    status: str
    created_at: str
    payment_data: Optional[PaymentData] = None
    metadata: Optional[dict[str, Any]] = None


class WalletWebhookPayload(BaseModel):
    event: WalletWebhookEvent = Field(..., description="Wallet event type")
    wallet_id: str
    wallet_label: str
    address_id: Optional[str] = None
    address: str
    currency_id: str
    transaction_id: str
    amount: str
    fee: Optional[str] = None
    txid: Optional[str] = None
    confirmations: int = Field(..., ge=0)
    status: str
    created_at: str
    metadata: Optional[dict[str, Any]] = None


def filter_events(events: Iterable[Enum], event_type: Enum) -> list:
    return [event for event in events if event == event_type]
