"""
Minimal ABI codec for the handful of ERC-20/ERC-721 read calls we make.

Only single static `address` parameters are encoded. Returns are decoded as
`uint256` or as a string in one of the two conventions found in deployed
tokens: a dynamic ABI `string`, or a legacy right-padded `bytes32`.
"""

from dataclasses import dataclass
from typing import Optional

from .errors import DecodeError
from .hexcodec import hex_to_bytes, hex_to_uint, pad_left_32

# First four bytes of keccak256 of the signature.
BALANCE_OF = "0x70a08231"  # balanceOf(address)
DECIMALS = "0x313ce567"  # decimals()
SYMBOL = "0x95d89b41"  # symbol()
NAME = "0x06fdde03"  # name()

WORD_BYTES = 32

FIXED = "fixed"
DYNAMIC = "dynamic"
FAILED = "failed"


def encode_selector_call(selector: str, address: Optional[str] = None) -> str:
    """Build call data: selector followed by an optional address word."""
    selector_digits = selector[2:] if selector.startswith("0x") else selector
    if len(selector_digits) != 8:
        raise ValueError("Selector must be exactly 4 bytes.")
    if address is None:
        return "0x" + selector_digits.lower()
    addr_digits = address.lower()[2:] if address.startswith(("0x", "0X")) else address.lower()
    return "0x" + selector_digits.lower() + pad_left_32(addr_digits)


def decode_uint(value: str) -> int:
    # MalformedHex is a DecodeError; a zero word is a valid 0.
    return hex_to_uint(value)


@dataclass(frozen=True)
class DecodedString:
    kind: str
    raw: bytes = b""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind != FAILED

    @property
    def text(self) -> Optional[str]:
        if not self.ok:
            return None
        if self.kind == FIXED:
            return self.raw.decode("latin-1") or None
        try:
            return self.raw.decode("utf-8")
        except UnicodeDecodeError:
            return self.raw.decode("latin-1")

    def unwrap(self) -> Optional[str]:
        if not self.ok:
            raise DecodeError(self.error or "Failed to decode string.")
        return self.text


def decode_string(value: str) -> DecodedString:
    """
    Decode a string return value.

    A payload of exactly one word is treated as bytes32: bytes are taken up to
    the first zero byte. Anything else is read as [offset][length][data]; the
    offset word is not followed, data is assumed to start right after the two
    header words, which holds for a single non-nested return value.
    """
    try:
        data = hex_to_bytes(value)
    except DecodeError as exc:
        return DecodedString(FAILED, error=str(exc))

    if len(data) == WORD_BYTES:
        end = data.find(b"\x00")
        run = data if end < 0 else data[:end]
        return DecodedString(FIXED, run)

    if len(data) < 2 * WORD_BYTES:
        return DecodedString(FAILED, error="Result shorter than the string header.")

    length = int.from_bytes(data[WORD_BYTES : 2 * WORD_BYTES], "big")
    start = 2 * WORD_BYTES
    if start + length > len(data):
        return DecodedString(
            FAILED,
            error=f"String length {length} exceeds the {len(data) - start} bytes available.",
        )
    return DecodedString(DYNAMIC, data[start : start + length])
