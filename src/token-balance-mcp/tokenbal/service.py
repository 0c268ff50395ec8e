import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

from . import abi
from .config import Config
from .errors import DecodeError, RpcError
from .models import DEFAULT_DECIMALS, UNKNOWN, NftMetadata, TokenMetadata
from .rpc_client import HttpTransport, RpcClient, RpcRequest, RpcResult

logger = logging.getLogger(__name__)

UINT8_MAX = 255


@dataclass(frozen=True)
class FieldResult:
    """Outcome of reading one metadata field: a value, or the error that stopped it."""

    value: Any = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def cause(self) -> Optional[str]:
        """transport | rpc | empty | decode, or None on success."""
        if self.error is None:
            return None
        if isinstance(self.error, RpcError):
            return self.error.cause
        return "decode"

    def or_default(self, default: Any) -> Any:
        if not self.ok or self.value in (None, ""):
            return default
        return self.value

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


def _string_field(raw: Any) -> FieldResult:
    if not isinstance(raw, str):
        return FieldResult(error=DecodeError("Unexpected non-hex result."))
    decoded = abi.decode_string(raw)
    if not decoded.ok:
        return FieldResult(error=DecodeError(decoded.error))
    return FieldResult(value=decoded.text)


def _uint_field(raw: Any) -> FieldResult:
    try:
        return FieldResult(value=abi.decode_uint(raw))
    except DecodeError as exc:
        return FieldResult(error=exc)


def _from_rpc_result(result: RpcResult, decode: Callable[[Any], FieldResult]) -> FieldResult:
    if result.error is not None:
        return FieldResult(error=result.error)
    return decode(result.value)


def _call_request(token: str, selector: str, param: Optional[str] = None) -> RpcRequest:
    data = abi.encode_selector_call(selector, param)
    return RpcRequest("eth_call", [{"to": token, "data": data}, "latest"])


class TokenQueryService:
    """Answer token metadata and balance queries against one JSON-RPC node.

    Addresses are expected to be validated by the caller.
    """

    def __init__(self, client: RpcClient) -> None:
        self.client = client

    @classmethod
    def from_config(cls, config: Config) -> "TokenQueryService":
        transport = HttpTransport(config.rpc_url, timeout=config.request_timeout)
        return cls(RpcClient(transport))

    def read_field(
        self, token: str, selector: str, decode: Callable[[Any], FieldResult]
    ) -> FieldResult:
        try:
            raw = self.client.eth_call(token, abi.encode_selector_call(selector))
        except RpcError as exc:
            return FieldResult(error=exc)
        return decode(raw)

    def fetch_fungible_metadata(self, address: str) -> TokenMetadata:
        # decimals is required, symbol is best-effort.
        decimals_field = self.read_field(address, abi.DECIMALS, _uint_field)
        if not decimals_field.ok:
            logger.info("decimals() failed for %s: %s", address, decimals_field.error)
        decimals = decimals_field.unwrap()
        if not 0 <= decimals <= UINT8_MAX:
            logger.info(
                "decimals() for %s out of range (%s); using %d", address, decimals, DEFAULT_DECIMALS
            )
            decimals = DEFAULT_DECIMALS

        symbol_field = self.read_field(address, abi.SYMBOL, _string_field)
        if not symbol_field.ok:
            logger.debug("symbol() unavailable for %s: %s", address, symbol_field.error)
        return TokenMetadata(
            address=address, symbol=symbol_field.or_default(UNKNOWN), decimals=decimals
        )

    def fetch_nft_metadata(self, address: str) -> NftMetadata:
        name_result, symbol_result = self.client.send(
            [_call_request(address, abi.NAME), _call_request(address, abi.SYMBOL)]
        )
        name_field = _from_rpc_result(name_result, _string_field)
        symbol_field = _from_rpc_result(symbol_result, _string_field)
        for label, item in (("name", name_field), ("symbol", symbol_field)):
            if not item.ok:
                logger.debug("%s() unavailable for %s: %s", label, address, item.error)
        return NftMetadata(
            address=address,
            name=name_field.or_default(UNKNOWN),
            symbol=symbol_field.or_default(UNKNOWN),
        )

    def fetch_balance(self, token_address: str, wallet_address: str) -> int:
        data = abi.encode_selector_call(abi.BALANCE_OF, wallet_address)
        raw = self.client.eth_call(token_address, data)
        return abi.decode_uint(raw)

    def fetch_native_balances(self, addresses: Sequence[str]) -> List[Optional[int]]:
        batch = [RpcRequest("eth_getBalance", [addr, "latest"]) for addr in addresses]
        balances: List[Optional[int]] = []
        for addr, result in zip(addresses, self.client.send(batch)):
            item = _from_rpc_result(result, _uint_field)
            if not item.ok:
                logger.debug("eth_getBalance unavailable for %s: %s", addr, item.error)
            balances.append(item.value if item.ok else None)
        return balances
