"""
Amount and address helpers shared by the webhook receiver and API callers.

Every function here is pure: no I/O, no clock reads except where a caller
asks for a freshly generated secret.
"""

import hashlib
import re
import secrets
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Union

from web3 import Web3

Number = Union[Decimal, int, float, str]

# results of to_smallest_unit must fit an unsigned 64-bit integer
MAX_SMALLEST_UNIT = 2**64 - 1

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
BECH32_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
BECH32_CONST = 1
BECH32M_CONST = 0x2BC830A3

# Base58Check version bytes for P2PKH / P2SH
MAINNET_VERSIONS = {0x00, 0x05}
TESTNET_VERSIONS = {0x6F, 0xC4}

_ETH_ADDRESS_RE = re.compile(r"0x[0-9a-fA-F]{40}")
_EMAIL_ATOM = r"[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+"
_EMAIL_LOCAL_RE = re.compile(rf"{_EMAIL_ATOM}(\.{_EMAIL_ATOM})*")
_EMAIL_LABEL_RE = re.compile(r"[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?")
_CURRENCY_ID_RE = re.compile(r"[A-Za-z0-9:]+")
_WALLET_LABEL_RE = re.compile(r"[A-Za-z0-9_-]{1,100}")


class AmountOverflowError(ValueError):
    pass


# ---------- amounts ----------
def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    if isinstance(value, float):
        # str() gives the shortest repr, so 1.1 stays 1.1 rather than 1.1000000000000000888
        value = str(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Invalid amount: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return result


def _check_places(decimal_places: int) -> None:
    if isinstance(decimal_places, bool) or not isinstance(decimal_places, int):
        raise ValueError(f"decimal_places must be an int, got {decimal_places!r}")
    if decimal_places < 0:
        raise ValueError(f"decimal_places must be non-negative, got {decimal_places}")


def format_amount(value: Number, decimal_places: int) -> str:
    """Render ``value`` with exactly ``decimal_places`` digits, rounding half away from zero."""
    _check_places(decimal_places)
    amount = _to_decimal(value)
    quantum = Decimal(1).scaleb(-decimal_places)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, amount.adjusted() + decimal_places + 2)
        rounded = amount.quantize(quantum, rounding=ROUND_HALF_UP)
    if rounded.is_zero():
        rounded = abs(rounded)
    return f"{rounded:f}"


def to_smallest_unit(value: Number, decimal_places: int) -> int:
    """
    Convert a currency amount to its base denomination (satoshi, wei, ...).

    Rounds half away from zero. Raises AmountOverflowError when the result
    does not fit an unsigned 64-bit integer.
    """
    _check_places(decimal_places)
    amount = _to_decimal(value)
    with localcontext() as ctx:
        # exact scaling: room for every digit of the amount plus the shift
        ctx.prec = max(ctx.prec, len(amount.as_tuple().digits) + decimal_places + 2)
        scaled = amount.scaleb(decimal_places)
        units = int(scaled.to_integral_value(rounding=ROUND_HALF_UP))
    if units < 0 or units > MAX_SMALLEST_UNIT:
        raise AmountOverflowError(
            f"{value} at {decimal_places} decimal places is outside the u64 range"
        )
    return units


def from_smallest_unit(integer_value: int, decimal_places: int) -> Decimal:
    _check_places(decimal_places)
    if isinstance(integer_value, bool) or not isinstance(integer_value, int):
        raise ValueError(f"integer_value must be an int, got {integer_value!r}")
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(str(abs(integer_value))) + 2)
        return Decimal(integer_value).scaleb(-decimal_places)


def parse_amount(amount: str) -> Decimal:
    try:
        return _to_decimal(amount.strip())
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid amount: {amount!r}")


def is_valid_amount(amount: str) -> bool:
    try:
        return parse_amount(amount) > 0
    except ValueError:
        return False


# ---------- bitcoin ----------
def _b58decode(value: str) -> bytes | None:
    num = 0
    for char in value:
        index = BASE58_ALPHABET.find(char)
        if index < 0:
            return None
        num = num * 58 + index
    leading = len(value) - len(value.lstrip("1"))
    body = num.to_bytes((num.bit_length() + 7) // 8, "big")
    return b"\x00" * leading + body


def _is_base58check_address(address: str, versions: set[int]) -> bool:
    if not 26 <= len(address) <= 35:
        return False
    raw = _b58decode(address)
    if raw is None or len(raw) != 25:
        return False
    payload, checksum = raw[:-4], raw[-4:]
    digest = hashlib.sha256(hashlib.sha256(payload).digest()).digest()
    return digest[:4] == checksum and payload[0] in versions


def _bech32_polymod(values: list[int]) -> int:
    generator = [0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3]
    chk = 1
    for value in values:
        top = chk >> 25
        chk = (chk & 0x1FFFFFF) << 5 ^ value
        for i in range(5):
            chk ^= generator[i] if (top >> i) & 1 else 0
    return chk


def _bech32_hrp_expand(hrp: str) -> list[int]:
    return [ord(x) >> 5 for x in hrp] + [0] + [ord(x) & 31 for x in hrp]


def _convert_bits(data: list[int], from_bits: int, to_bits: int) -> list[int] | None:
    # regroup without padding; leftover bits must be zero
    acc = 0
    bits = 0
    ret = []
    maxv = (1 << to_bits) - 1
    max_acc = (1 << (from_bits + to_bits - 1)) - 1
    for value in data:
        acc = ((acc << from_bits) | value) & max_acc
        bits += from_bits
        while bits >= to_bits:
            bits -= to_bits
            ret.append((acc >> bits) & maxv)
    if bits >= from_bits or ((acc << (to_bits - bits)) & maxv):
        return None
    return ret


def _is_segwit_address(address: str, hrp: str) -> bool:
    if len(address) > 90 or any(ord(c) < 33 or ord(c) > 126 for c in address):
        return False
    if address.lower() != address and address.upper() != address:
        return False
    address = address.lower()
    pos = address.rfind("1")
    if pos < 1 or pos + 7 > len(address) or address[:pos] != hrp:
        return False
    if any(c not in BECH32_CHARSET for c in address[pos + 1 :]):
        return False
    data = [BECH32_CHARSET.find(c) for c in address[pos + 1 :]]
    const = _bech32_polymod(_bech32_hrp_expand(hrp) + data)
    data = data[:-6]
    if not data:
        return False
    version = data[0]
    if version > 16:
        return False
    # witness v0 uses bech32, v1+ uses bech32m
    if const != (BECH32_CONST if version == 0 else BECH32M_CONST):
        return False
    program = _convert_bits(data[1:], 5, 8)
    if program is None or not 2 <= len(program) <= 40:
        return False
    if version == 0 and len(program) not in (20, 32):
        return False
    return True


def is_valid_bitcoin_address(address: str, *, testnet: bool = False) -> bool:
    """
    Structural Bitcoin address check.

    Accepts Base58Check P2PKH/P2SH addresses and Bech32/Bech32m segwit
    addresses, verifying the checksum of each. Nothing is looked up on the
    network.
    """
    if not isinstance(address, str) or not address:
        return False
    hrp = "tb" if testnet else "bc"
    if address[:3].lower() == hrp + "1":
        return _is_segwit_address(address, hrp)
    return _is_base58check_address(
        address, TESTNET_VERSIONS if testnet else MAINNET_VERSIONS
    )


# ---------- ethereum ----------
def is_valid_ethereum_address(address: str, *, require_checksum: bool = False) -> bool:
    """
    Check for ``0x`` followed by 40 hex characters.

    With ``require_checksum`` the address must carry exact EIP-55 casing:
    all-lowercase and all-uppercase addresses are rejected as unchecksummed.
    Without it any casing passes.
    """
    if not isinstance(address, str) or not _ETH_ADDRESS_RE.fullmatch(address):
        return False
    if require_checksum:
        return Web3.is_checksum_address(address)
    return True


# ---------- misc ----------
def is_valid_email(address: str) -> bool:
    """Best-effort syntax check; deliberately stricter than RFC 5322."""
    if not isinstance(address, str) or len(address) > 254 or address.count("@") != 1:
        return False
    local, domain = address.split("@")
    if not local or len(local) > 64 or not _EMAIL_LOCAL_RE.fullmatch(local):
        return False
    labels = domain.split(".")
    if len(labels) < 2 or not all(_EMAIL_LABEL_RE.fullmatch(label) for label in labels):
        return False
    # top-level domain is never all digits
    return not labels[-1].isdigit()


def is_valid_currency_id(currency_id: str) -> bool:
    # "4" or token form "4:0xdac17f958d2ee523a2206206994597c13d831ec7"
    return bool(_CURRENCY_ID_RE.fullmatch(currency_id or ""))


def is_valid_wallet_label(label: str) -> bool:
    return bool(_WALLET_LABEL_RE.fullmatch(label or ""))


def is_valid_url(url: str) -> bool:
    return isinstance(url, str) and url.startswith(("http://", "https://"))


def timestamp_to_iso8601(timestamp: int) -> str:
    dt = datetime.fromtimestamp(timestamp, UTC)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def iso8601_to_timestamp(value: str) -> int:
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid ISO 8601 date: {value!r}")
    if dt.tzinfo is None:
        raise ValueError(f"ISO 8601 date has no UTC offset: {value!r}")
    return int(dt.timestamp())


def generate_webhook_secret(nbytes: int = 32) -> str:
    return secrets.token_urlsafe(nbytes)
