import itertools
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import requests

from .errors import EmptyResult, RpcApplicationError, RpcError, TransportError, ValidationError

logger = logging.getLogger(__name__)

# Process-wide so ids never collide across clients sharing one node.
_ids = itertools.count(1)


def next_request_id() -> int:
    return next(_ids)


class HttpTransport:
    """POST raw bytes to a JSON-RPC endpoint and return the raw reply body."""

    def __init__(
        self,
        rpc_url: str,
        timeout: int = 10,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        url = (rpc_url or "").strip()
        if not url:
            raise ValueError("rpc_url must be a non-empty string.")

        self.rpc_url = url
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if headers:
            self.session.headers.update(dict(headers))

    def post(self, body: bytes) -> bytes:
        try:
            response = self.session.post(self.rpc_url, data=body, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(f"RPC connection failed: {exc}") from exc
        if not 200 <= response.status_code < 300:
            raise TransportError(f"RPC HTTP error {response.status_code}", code=response.status_code)
        return response.content


@dataclass
class RpcRequest:
    method: str
    params: List[Any] = field(default_factory=list)
    id: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        return {"jsonrpc": "2.0", "id": self.id, "method": self.method, "params": self.params}


@dataclass
class RpcResult:
    value: Any = None
    error: Optional[RpcError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


def _error_from_object(error_obj: Any) -> RpcApplicationError:
    if not isinstance(error_obj, dict):
        return RpcApplicationError(f"RPC error: {error_obj}")
    code = error_obj.get("code")
    message = error_obj.get("message") or "unknown error"
    return RpcApplicationError(str(message), code=code, data=error_obj.get("data"))


def _result_from_envelope(envelope: Dict[str, Any]) -> RpcResult:
    if envelope.get("error") is not None:
        return RpcResult(error=_error_from_object(envelope["error"]))
    if envelope.get("result") is None:
        return RpcResult(error=EmptyResult("Empty RPC result"))
    return RpcResult(value=envelope["result"])


class RpcClient:
    """Minimal JSON-RPC 2.0 client for EVM nodes with batch support.

    Never retries; callers decide whether a failure is worth another attempt.
    """

    def __init__(self, transport: Any) -> None:
        self.transport = transport

    def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        if not isinstance(method, str) or not method.strip():
            raise ValueError("method must be a non-empty string.")
        if params is None:
            params = []
        if not isinstance(params, list):
            raise ValueError("params must be a list.")

        request = RpcRequest(method, params, next_request_id())
        logger.debug("rpc call id=%s method=%s", request.id, method)
        raw = self.transport.post(json.dumps(request.to_payload()).encode("utf-8"))
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise TransportError("Unexpected JSON-RPC response (not JSON).") from exc
        if not isinstance(data, dict):
            raise TransportError("Unexpected JSON-RPC response (non-object).")
        return _result_from_envelope(data).unwrap()

    def send(self, batch: Sequence[RpcRequest]) -> List[RpcResult]:
        """Send a batch and return results in the same order as the requests."""
        if not batch:
            return []

        # Caller ids are checked before any request is touched.
        seen = set()
        for request in batch:
            if request.id is None:
                continue
            if request.id in seen:
                raise ValidationError(f"Duplicate request id {request.id} in batch.")
            seen.add(request.id)
        for request in batch:
            if request.id is None:
                request_id = next_request_id()
                while request_id in seen:
                    request_id = next_request_id()
                request.id = request_id
                seen.add(request_id)

        body = json.dumps([r.to_payload() for r in batch]).encode("utf-8")
        logger.debug("rpc batch size=%d ids=%s", len(batch), [r.id for r in batch])
        try:
            raw = self.transport.post(body)
            data = json.loads(raw)
        except TransportError as exc:
            logger.warning("rpc batch failed: %s", exc)
            return [RpcResult(error=exc) for _ in batch]
        except ValueError:
            exc = TransportError("Unexpected JSON-RPC response (not JSON).")
            logger.warning("rpc batch failed: %s", exc)
            return [RpcResult(error=exc) for _ in batch]

        if isinstance(data, dict):
            # Some nodes reject a whole batch with one error envelope.
            if data.get("error") is not None:
                exc = _error_from_object(data["error"])
            else:
                exc = TransportError("Unexpected JSON-RPC batch response (non-array).")
            logger.warning("rpc batch rejected: %s", exc)
            return [RpcResult(error=exc) for _ in batch]
        if not isinstance(data, list):
            exc = TransportError("Unexpected JSON-RPC batch response (non-array).")
            return [RpcResult(error=exc) for _ in batch]

        by_id: Dict[Any, Dict[str, Any]] = {}
        for envelope in data:
            if isinstance(envelope, dict) and "id" in envelope:
                by_id[envelope["id"]] = envelope

        results: List[RpcResult] = []
        for request in batch:
            envelope = by_id.get(request.id)
            if envelope is None:
                results.append(RpcResult(error=TransportError(f"No response for id {request.id}")))
            else:
                results.append(_result_from_envelope(envelope))
        return results

    def eth_call(self, to: str, data: str, block: str = "latest") -> Any:
        return self.call("eth_call", [{"to": to, "data": data}, block])

    def get_balance(self, address: str, block: str = "latest") -> Any:
        return self.call("eth_getBalance", [address, block])
