import base64
import binascii
import hashlib
import hmac
import logging
import re
from typing import Literal, Mapping, Optional, Union

from coinpayments.schemas.webhooks import (
    FailureReason,
    VerificationResult,
    WebhookHeaders,
)
from coinpayments.services.validation import iso8601_to_timestamp

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-CoinPayments-Signature"
TIMESTAMP_HEADER = "X-CoinPayments-Timestamp"
CLIENT_HEADER = "X-CoinPayments-Client"
EVENT_HEADER = "X-CoinPayments-Event"

SUPPORTED_ALGORITHMS = ("sha256", "sha384", "sha512")
DEFAULT_ALGORITHM = "sha512"
DEFAULT_ENCODING = "hex"
DEFAULT_TOLERANCE_SECONDS = 300

Secret = Union[str, bytes]
Encoding = Literal["hex", "base64"]
TimestampFormat = Literal["unix", "iso8601"]

_INTEGER_RE = re.compile(r"-?[0-9]+")


class WebhookParseError(Exception):
    """Webhook headers are missing or cannot be decoded."""

    reason = FailureReason.MALFORMED_ENCODING

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class MissingFieldError(WebhookParseError):
    reason = FailureReason.MISSING_FIELD


class MalformedEncodingError(WebhookParseError):
    reason = FailureReason.MALFORMED_ENCODING


class WebhookAuthenticationError(Exception):
    def __init__(self, reason: FailureReason):
        super().__init__(f"Webhook not authentic: {reason.value}")
        self.reason = reason


# ---------- parsing ----------
def _decode_signature(value: str, encoding: Encoding) -> bytes:
    value = value.strip()
    if encoding == "hex":
        try:
            return binascii.unhexlify(value)
        except (binascii.Error, ValueError):
            raise MalformedEncodingError(SIGNATURE_HEADER, "Signature is not valid hex")
    if encoding == "base64":
        try:
            return base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError):
            raise MalformedEncodingError(
                SIGNATURE_HEADER, "Signature is not valid base64"
            )
    raise ValueError(f"Unsupported signature encoding: {encoding}")


def _decode_timestamp(value: str, timestamp_format: TimestampFormat) -> int:
    value = value.strip()
    if timestamp_format == "unix":
        # int() would also accept "1_000" and unicode digits
        if not _INTEGER_RE.fullmatch(value):
            raise MalformedEncodingError(
                TIMESTAMP_HEADER, "Timestamp is not a valid integer"
            )
        return int(value)
    if timestamp_format == "iso8601":
        try:
            return iso8601_to_timestamp(value)
        except ValueError:
            raise MalformedEncodingError(
                TIMESTAMP_HEADER, "Timestamp is not a valid ISO 8601 date"
            )
    raise ValueError(f"Unsupported timestamp format: {timestamp_format}")


def parse_headers(
    raw_header_map: Mapping[str, str],
    *,
    encoding: Encoding = DEFAULT_ENCODING,
    timestamp_format: TimestampFormat = "unix",
) -> WebhookHeaders:
    """
    Extract the authentication headers from a request header mapping.

    Header names are matched case-insensitively. Raises MissingFieldError if
    the signature or timestamp is absent and MalformedEncodingError if either
    cannot be decoded or an authentication header is repeated.
    """
    headers: dict[str, list[str]] = {}
    for key, value in raw_header_map.items():
        headers.setdefault(str(key).lower(), []).append(value)

    def _get(name: str) -> Optional[str]:
        values = headers.get(name.lower(), [])
        if len(values) > 1:
            raise MalformedEncodingError(name, f"Repeated {name} header")
        value = values[0] if values else None
        if value is None or not str(value).strip():
            return None
        return str(value)

    raw_signature = _get(SIGNATURE_HEADER)
    if raw_signature is None:
        raise MissingFieldError(SIGNATURE_HEADER, f"Missing {SIGNATURE_HEADER} header")
    raw_timestamp = _get(TIMESTAMP_HEADER)
    if raw_timestamp is None:
        raise MissingFieldError(TIMESTAMP_HEADER, f"Missing {TIMESTAMP_HEADER} header")

    signature = _decode_signature(raw_signature, encoding)
    if not signature:
        raise MalformedEncodingError(SIGNATURE_HEADER, "Signature is empty")

    return WebhookHeaders(
        signature=signature,
        timestamp=_decode_timestamp(raw_timestamp, timestamp_format),
        raw_timestamp=raw_timestamp.strip(),
        client_id=_get(CLIENT_HEADER),
        event_id=_get(EVENT_HEADER),
    )


# ---------- signature ----------
def _secret_bytes(secret: Secret) -> bytes:
    if isinstance(secret, str):
        return secret.encode("utf-8")
    return bytes(secret)


def signing_input(
    raw_payload: bytes,
    client_id: Optional[str] = None,
    raw_timestamp: Optional[str] = None,
) -> bytes:
    """Message the provider signs when headers are bound: client id + timestamp + body."""
    prefix = (client_id or "") + (raw_timestamp or "")
    return prefix.encode("utf-8") + raw_payload


def compute_expected_signature(
    secret: Secret, raw_payload: bytes, *, algorithm: str = DEFAULT_ALGORITHM
) -> bytes:
    if algorithm not in SUPPORTED_ALGORITHMS:
        raise ValueError(f"Unsupported signature algorithm: {algorithm}")
    digestmod = getattr(hashlib, algorithm)
    return hmac.new(_secret_bytes(secret), raw_payload, digestmod).digest()


def encode_signature(signature: bytes, encoding: Encoding = DEFAULT_ENCODING) -> str:
    if encoding == "hex":
        return signature.hex()
    if encoding == "base64":
        return base64.b64encode(signature).decode("ascii")
    raise ValueError(f"Unsupported signature encoding: {encoding}")


def verify_signature(
    secret: Secret,
    headers: WebhookHeaders,
    raw_payload: bytes,
    *,
    algorithm: str = DEFAULT_ALGORITHM,
    sign_headers: bool = False,
) -> bool:
    """
    Return True if ``headers.signature`` is the HMAC of ``raw_payload``.

    The comparison is constant time. A signature of the wrong length is
    simply not equal.
    """
    message = raw_payload
    if sign_headers:
        message = signing_input(raw_payload, headers.client_id, headers.raw_timestamp)
    expected = compute_expected_signature(secret, message, algorithm=algorithm)
    return hmac.compare_digest(expected, headers.signature)


# ---------- freshness ----------
def is_timestamp_valid(
    timestamp: int, tolerance_seconds: int, now: Union[int, float]
) -> bool:
    """True iff ``timestamp`` lies within ``tolerance_seconds`` of ``now``, either side."""
    if tolerance_seconds < 0:
        raise ValueError("tolerance_seconds must be non-negative")
    return abs(now - timestamp) <= tolerance_seconds


# ---------- combined ----------
def authenticate(
    secret: Secret,
    headers: WebhookHeaders,
    raw_payload: bytes,
    *,
    now: Union[int, float],
    tolerance_seconds: int = DEFAULT_TOLERANCE_SECONDS,
    algorithm: str = DEFAULT_ALGORITHM,
    sign_headers: bool = False,
) -> VerificationResult:
    if not verify_signature(
        secret, headers, raw_payload, algorithm=algorithm, sign_headers=sign_headers
    ):
        return VerificationResult(valid=False, reason=FailureReason.SIGNATURE_MISMATCH)
    if not is_timestamp_valid(headers.timestamp, tolerance_seconds, now):
        reason = (
            FailureReason.TIMESTAMP_IN_FUTURE
            if headers.timestamp > now
            else FailureReason.TIMESTAMP_EXPIRED
        )
        return VerificationResult(valid=False, reason=reason)
    return VerificationResult(valid=True)


def verify_request(
    secret: Secret,
    raw_header_map: Mapping[str, str],
    raw_payload: bytes,
    *,
    now: Union[int, float],
    tolerance_seconds: int = DEFAULT_TOLERANCE_SECONDS,
    algorithm: str = DEFAULT_ALGORITHM,
    encoding: Encoding = DEFAULT_ENCODING,
    timestamp_format: TimestampFormat = "unix",
    sign_headers: bool = False,
) -> WebhookHeaders:
    """
    Parse and authenticate one webhook request.

    Raise WebhookParseError if the headers are unusable and
    WebhookAuthenticationError if the request is not authentic.
    """
    try:
        headers = parse_headers(
            raw_header_map, encoding=encoding, timestamp_format=timestamp_format
        )
    except WebhookParseError as e:
        logger.warning(f"Rejecting webhook: {e} ({e.reason.value})")
        raise

    result = authenticate(
        secret,
        headers,
        raw_payload,
        now=now,
        tolerance_seconds=tolerance_seconds,
        algorithm=algorithm,
        sign_headers=sign_headers,
    )
    if not result.valid:
        logger.warning(
            f"Rejecting webhook from client={headers.client_id} "
            f"event={headers.event_id}: {result.reason.value}"
        )
        raise WebhookAuthenticationError(result.reason)

    logger.info(
        f"Webhook verified for client={headers.client_id} event={headers.event_id}"
    )
    return headers
