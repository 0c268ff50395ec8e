from typing import Any, Optional


class ValidationError(ValueError):
    """Rejected input; raised before any network call is made."""


class DecodeError(ValueError):
    """Malformed or unexpected hex payload."""


class MalformedHex(DecodeError):
    pass


class OversizeValue(ValueError):
    pass


class RpcError(Exception):
    """Base for failures reported by the JSON-RPC layer."""

    cause = "rpc"

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data

    def __str__(self) -> str:
        if self.code is not None:
            return f"{self.message} (code {self.code})"
        return self.message


class TransportError(RpcError):
    """Delivery failed: connection error, non-2xx status or unreadable body."""

    cause = "transport"


class RpcApplicationError(RpcError):
    """The node answered with an explicit error object."""

    cause = "rpc"


class EmptyResult(RpcError):
    """Success envelope without a result field."""

    cause = "empty"
