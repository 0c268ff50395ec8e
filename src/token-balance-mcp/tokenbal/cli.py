import argparse
import json
import sys
from dataclasses import asdict
from typing import Optional

from .config import load_config
from .formatting import format_units
from .log import setup_logging
from .models import require_address
from .service import TokenQueryService

ETH_DECIMALS = 18


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Read ERC-20/ERC-721 metadata and balances from a JSON-RPC node.",
        allow_abbrev=False,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    meta_parser = subparsers.add_parser("token-metadata", help="Fetch ERC-20 symbol and decimals")
    meta_parser.add_argument(
        "--address",
        required=True,
        help="Token contract address (0x-prefixed).",
    )

    nft_parser = subparsers.add_parser("nft-metadata", help="Fetch ERC-721 name and symbol")
    nft_parser.add_argument(
        "--address",
        required=True,
        help="NFT contract address (0x-prefixed).",
    )

    balance_parser = subparsers.add_parser("balance", help="Fetch balanceOf(wallet) for a token")
    balance_parser.add_argument(
        "--token",
        required=True,
        help="Token contract address (0x-prefixed).",
    )
    balance_parser.add_argument(
        "--wallet",
        required=True,
        help="Wallet address (0x-prefixed).",
    )
    balance_parser.add_argument(
        "--decimals",
        required=False,
        type=int,
        help="Format with these decimals instead of querying decimals(). Use 0 for NFTs.",
    )

    eth_parser = subparsers.add_parser("eth-balances", help="Fetch native balances in one batch")
    eth_parser.add_argument(
        "--address",
        action="append",
        dest="addresses",
        help="Address to query; repeatable. Defaults to WATCH_ADDRESSES.",
    )

    format_parser = subparsers.add_parser("format", help="Format a smallest-unit amount")
    format_parser.add_argument("--amount", required=True, type=int, help="Unsigned integer amount.")
    format_parser.add_argument("--decimals", required=True, type=int, help="Decimal places.")

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config()
        setup_logging(config.log_level)

        if args.command == "format":
            print(json.dumps({"formatted": format_units(args.amount, args.decimals)}, indent=2))
            return

        service = TokenQueryService.from_config(config)

        if args.command == "token-metadata":
            meta = service.fetch_fungible_metadata(require_address(args.address))
            print(json.dumps(asdict(meta), indent=2))
        elif args.command == "nft-metadata":
            nft = service.fetch_nft_metadata(require_address(args.address))
            print(json.dumps(asdict(nft), indent=2))
        elif args.command == "balance":
            token = require_address(args.token, "token")
            wallet = require_address(args.wallet, "wallet")
            decimals = args.decimals
            if decimals is None:
                decimals = service.fetch_fungible_metadata(token).decimals
            raw = service.fetch_balance(token, wallet)
            result = {
                "token": token,
                "wallet": wallet,
                "raw": str(raw),
                "decimals": decimals,
                "formatted": format_units(raw, decimals),
            }
            print(json.dumps(result, indent=2))
        elif args.command == "eth-balances":
            addresses = [require_address(a) for a in (args.addresses or config.watch_addresses)]
            balances = service.fetch_native_balances(addresses)
            result = [
                {
                    "address": addr,
                    "wei": str(wei) if wei is not None else None,
                    "eth": format_units(wei, ETH_DECIMALS) if wei is not None else None,
                }
                for addr, wei in zip(addresses, balances)
            ]
            print(json.dumps(result, indent=2))
    except Exception as exc:  # pylint: disable=broad-except
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
