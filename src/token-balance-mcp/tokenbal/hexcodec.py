import re

from .errors import MalformedHex, OversizeValue

HEX_PATTERN = re.compile(r"^0x[0-9a-fA-F]+$")
WORD_HEX_DIGITS = 64


def hex_to_uint(value: str) -> int:
    """Parse a 0x-prefixed big-endian hex string of any length."""
    if not isinstance(value, str) or not HEX_PATTERN.fullmatch(value):
        raise MalformedHex(f"Not a 0x-prefixed hex string: {value!r}")
    return int(value[2:], 16)


def hex_to_bytes(value: str) -> bytes:
    if not isinstance(value, str) or not value.startswith("0x"):
        raise MalformedHex("Result must be a 0x-prefixed hex string.")
    body = value[2:]
    if len(body) % 2 != 0:
        raise MalformedHex("Hex string has an odd number of digits.")
    if not re.fullmatch(r"[0-9a-fA-F]*", body):
        raise MalformedHex("Result must be a hex string.")
    return bytes.fromhex(body)


def pad_left_32(hex_digits: str) -> str:
    if len(hex_digits) > WORD_HEX_DIGITS:
        raise OversizeValue(f"{len(hex_digits)} hex digits do not fit in a 32-byte word.")
    return hex_digits.rjust(WORD_HEX_DIGITS, "0")


def uint_to_hex(value: int) -> str:
    if value < 0:
        raise ValueError("Unsigned value required.")
    return "0x" + pad_left_32(format(value, "x"))
