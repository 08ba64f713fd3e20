#!/usr/bin/env python3
"""Print the CoinPayments webhook headers for a JSON body, for curl-driven local testing."""

import argparse
import json
import sys
import time

from coinpayments.services.webhook_sign import build_webhook_headers
from coinpayments.services.webhook_verify import (
    DEFAULT_ALGORITHM,
    DEFAULT_ENCODING,
    SUPPORTED_ALGORITHMS,
)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("secret", help="webhook secret shared with the receiver")
    parser.add_argument("body", help="JSON body, signed byte for byte as given")
    parser.add_argument("--algorithm", choices=SUPPORTED_ALGORITHMS, default=DEFAULT_ALGORITHM)
    parser.add_argument("--encoding", choices=("hex", "base64"), default=DEFAULT_ENCODING)
    parser.add_argument("--timestamp", help="defaults to the current epoch second")
    parser.add_argument("--client-id")
    parser.add_argument("--event-id")
    parser.add_argument(
        "--sign-headers",
        action="store_true",
        help="bind client id and timestamp into the signature",
    )
    return parser


def main(argv=None) -> int:
    args = _parser().parse_args(argv)
    try:
        json.loads(args.body)
    except json.JSONDecodeError as e:
        print(f"body is not JSON: {e}", file=sys.stderr)
        return 1

    headers = build_webhook_headers(
        args.secret,
        args.body.encode("utf-8"),
        args.timestamp or int(time.time()),
        client_id=args.client_id,
        event_id=args.event_id,
        algorithm=args.algorithm,
        encoding=args.encoding,
        sign_headers=args.sign_headers,
    )
    for name, value in headers.items():
        print(f"{name}: {value}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
