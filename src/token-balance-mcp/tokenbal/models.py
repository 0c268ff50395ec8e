import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .errors import ValidationError

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
UNKNOWN = "?"
DEFAULT_DECIMALS = 18


def is_address(value: Any) -> bool:
    return isinstance(value, str) and bool(ADDRESS_PATTERN.fullmatch(value))


def require_address(value: Any, field_name: str = "address") -> str:
    """Strip and validate; returns the address as given (case preserved)."""
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string.")
    candidate = value.strip()
    if not ADDRESS_PATTERN.fullmatch(candidate):
        raise ValidationError(
            f"Invalid {field_name} format. Expected 0x-prefixed 40 hex characters."
        )
    return candidate


def address_key(address: str) -> str:
    return address.lower()


@dataclass(frozen=True)
class TokenMetadata:
    address: str
    symbol: str
    decimals: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenMetadata":
        return cls(
            address=require_address(data["address"]),
            symbol=str(data.get("symbol") or UNKNOWN),
            decimals=int(data.get("decimals", DEFAULT_DECIMALS)),
        )


@dataclass(frozen=True)
class NftMetadata:
    address: str
    name: str
    symbol: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NftMetadata":
        return cls(
            address=require_address(data["address"]),
            name=str(data.get("name") or UNKNOWN),
            symbol=str(data.get("symbol") or UNKNOWN),
        )


@dataclass(frozen=True)
class BalanceReading:
    token_address: str
    wallet_address: str
    amount: Optional[int]
    updated_at: float = field(default_factory=time.time)
    error: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.amount is not None
