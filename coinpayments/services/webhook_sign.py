from typing import Optional

from coinpayments.services.webhook_verify import (
    CLIENT_HEADER,
    DEFAULT_ALGORITHM,
    DEFAULT_ENCODING,
    EVENT_HEADER,
    SIGNATURE_HEADER,
    TIMESTAMP_HEADER,
    Encoding,
    Secret,
    compute_expected_signature,
    encode_signature,
    signing_input,
)


def build_webhook_headers(
    secret: Secret,
    raw_payload: bytes,
    timestamp: int | str,
    *,
    client_id: Optional[str] = None,
    event_id: Optional[str] = None,
    algorithm: str = DEFAULT_ALGORITHM,
    encoding: Encoding = DEFAULT_ENCODING,
    sign_headers: bool = False,
) -> dict[str, str]:
    """Headers a provider would send alongside ``raw_payload``."""
    timestamp_str = str(timestamp)
    message = raw_payload
    if sign_headers:
        message = signing_input(raw_payload, client_id, timestamp_str)
    signature = compute_expected_signature(secret, message, algorithm=algorithm)

    headers = {
        SIGNATURE_HEADER: encode_signature(signature, encoding),
        TIMESTAMP_HEADER: timestamp_str,
    }
    if client_id is not None:
        headers[CLIENT_HEADER] = client_id
    if event_id is not None:
        headers[EVENT_HEADER] = event_id
    return headers
