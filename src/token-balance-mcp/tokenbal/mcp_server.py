"""
MCP server exposing token metadata and balance reads over JSON-RPC.
"""

import argparse
import sys
from collections.abc import Mapping
from dataclasses import asdict
from typing import Any, Optional

from mcp.server.fastmcp import FastMCP

from .config import Config, load_config
from .formatting import format_units as _format_units
from .log import setup_logging
from .models import require_address
from .service import TokenQueryService

server = FastMCP(
    name="token-balance-mcp",
    instructions="Read ERC-20/ERC-721 metadata and balances from an Ethereum JSON-RPC node.",
)

_service: Optional[TokenQueryService] = None
_config: Optional[Config] = None


def _get_config() -> Config:
    global _config
    if _config is None:
        _config = load_config()
    return _config


def _get_service() -> TokenQueryService:
    global _service
    if _service is None:
        _service = TokenQueryService.from_config(_get_config())
    return _service


def _normalize_array_param(value: Optional[Any], name: str) -> Optional[list]:
    """
    Ensure a parameter intended as an array is actually treated as one:
    - str/bytes: likely misuse, raise with guidance
    - list/tuple: keep as list
    - Mapping: reject (not an array)
    - other scalars: auto-wrap into single-element list
    """
    if value is None:
        return None
    if isinstance(value, (str, bytes, bytearray)):
        raise ValueError(f"{name} must be an array (e.g. ['0x...', '0x...']); got a string/bytes.")
    if isinstance(value, Mapping):
        raise ValueError(f"{name} must be an array, not an object/map.")
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


@server.tool(
    name="token_metadata",
    title="ERC-20 Token Metadata",
    description="Fetch symbol and decimals of an ERC-20 token. decimals() must succeed; symbol falls back to '?'.",
)
def token_metadata(address: str) -> dict:
    svc = _get_service()
    return asdict(svc.fetch_fungible_metadata(require_address(address)))


@server.tool(
    name="nft_metadata",
    title="ERC-721 Metadata",
    description="Fetch name and symbol of an ERC-721 contract. Each falls back to '?' independently.",
)
def nft_metadata(address: str) -> dict:
    svc = _get_service()
    return asdict(svc.fetch_nft_metadata(require_address(address)))


@server.tool(
    name="token_balance",
    title="Token Balance",
    description="balanceOf(wallet) for an ERC-20 or ERC-721 contract. Pass decimals to skip the decimals() lookup (0 for NFTs).",
)
def token_balance(token: str, wallet: str, decimals: Optional[int] = None) -> dict:
    svc = _get_service()
    token_addr = require_address(token, "token")
    wallet_addr = require_address(wallet, "wallet")
    if decimals is None:
        decimals = svc.fetch_fungible_metadata(token_addr).decimals
    raw = svc.fetch_balance(token_addr, wallet_addr)
    return {
        "token": token_addr,
        "wallet": wallet_addr,
        "raw": str(raw),
        "decimals": decimals,
        "formatted": _format_units(raw, decimals),
    }


@server.tool(
    name="native_balances",
    title="Native Balances",
    description="Batch eth_getBalance for `addresses` (array; defaults to WATCH_ADDRESSES). Failed slots are null.",
)
def native_balances(addresses: Optional[Any] = None) -> dict:
    svc = _get_service()
    normalized = _normalize_array_param(addresses, "addresses")
    if normalized is None:
        normalized = _get_config().watch_addresses
    checked = [require_address(a) for a in normalized]
    balances = svc.fetch_native_balances(checked)
    return {
        "balances": [
            {
                "address": addr,
                "wei": str(wei) if wei is not None else None,
                "eth": _format_units(wei, 18) if wei is not None else None,
            }
            for addr, wei in zip(checked, balances)
        ]
    }


@server.tool(
    name="format_units",
    title="Format Units",
    description="Format an unsigned smallest-unit amount with the given decimals, trimming trailing zeros.",
)
def format_units(amount: Any, decimals: int) -> dict:
    value = int(str(amount).strip(), 10)
    return {"amount": str(value), "decimals": decimals, "formatted": _format_units(value, decimals)}


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Run the token balance MCP server.")
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "streamable-http"],
        default="stdio",
        help="Transport protocol for MCP.",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host for SSE/HTTP transports.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for SSE/HTTP transports.",
    )
    parser.add_argument(
        "--mount-path",
        default="/",
        help="Mount path for SSE transport (only when transport=sse).",
    )
    args = parser.parse_args(argv)

    try:
        setup_logging(_get_config().log_level)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    # FastMCP uses host/port only for SSE/HTTP transports; stdio ignores them.
    server.settings.host = args.host
    server.settings.port = args.port

    if args.transport == "sse":
        server.run(transport="sse", mount_path=args.mount_path)
    else:
        server.run(transport=args.transport)


if __name__ == "__main__":
    main()
