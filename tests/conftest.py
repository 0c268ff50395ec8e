import json

import pytest

from tokenbal.errors import TransportError
from tokenbal.rpc_client import RpcClient
from tokenbal.service import TokenQueryService

REVERT = {"code": 3, "message": "execution reverted"}


def word(value: int) -> str:
    return format(value, "x").rjust(64, "0")


def uint_result(value: int) -> str:
    return "0x" + word(value)


def string_result(text: str) -> str:
    data = text.encode("utf-8").hex()
    padded = data.ljust(((len(data) + 63) // 64) * 64 or 64, "0")
    return "0x" + word(32) + word(len(text.encode("utf-8"))) + padded


def bytes32_result(text: str) -> str:
    return "0x" + text.encode("ascii").hex().ljust(64, "0")


class FakeNode:
    """Stand-in for HttpTransport answering eth_call / eth_getBalance from a table.

    Keys are ("call", to, data) or ("balance", address), lowercase. Values are a
    result string, an error dict, or a callable returning either. Batch replies
    come back in reverse order.
    """

    def __init__(self):
        self.responses = {}
        self.bodies = []
        self.down = False

    def on_call(self, to, data, value):
        self.responses[("call", to.lower(), data.lower())] = value

    def on_balance(self, address, value):
        self.responses[("balance", address.lower())] = value

    def _answer(self, request):
        method = request["method"]
        params = request["params"]
        if method == "eth_call":
            key = ("call", params[0]["to"].lower(), params[0]["data"].lower())
        elif method == "eth_getBalance":
            key = ("balance", params[0].lower())
        else:
            key = (method,)
        value = self.responses.get(key, REVERT)
        if callable(value):
            value = value()
        envelope = {"jsonrpc": "2.0", "id": request["id"]}
        if isinstance(value, dict):
            envelope["error"] = value
        else:
            envelope["result"] = value
        return envelope

    @property
    def requests(self):
        out = []
        for body in self.bodies:
            out.extend(body if isinstance(body, list) else [body])
        return out

    def post(self, body):
        decoded = json.loads(body)
        self.bodies.append(decoded)
        if self.down:
            raise TransportError("RPC HTTP error 502", code=502)
        if isinstance(decoded, list):
            reply = [self._answer(r) for r in decoded]
            reply.reverse()
        else:
            reply = self._answer(decoded)
        return json.dumps(reply).encode("utf-8")


@pytest.fixture
def node():
    return FakeNode()


@pytest.fixture
def service(node):
    return TokenQueryService(RpcClient(node))
