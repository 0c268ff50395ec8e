import os
from dataclasses import dataclass, field
from typing import List

from .models import require_address

DEFAULT_RPC_URL = "http://127.0.0.1:8545"

# Prefunded accounts of a local anvil/hardhat node.
DEFAULT_WATCH_ADDRESSES = [
    "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
    "0x70997970C51812dc3A010C7d01b50e0d17dc79C8",
    "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC",
    "0x90F79bf6EB2c4f870365E785982E1f101E93b906",
    "0x15d34AAf54267DB7D7c367839AAf71A00a2C6A65",
    "0x9965507D1a55bcC2695C58ba16FB37d819B0A4dc",
    "0x976EA74026E726554dB657fA54763abd0C3a0aa9",
    "0x14dC79964da2C08b23698B3D3cc7Ca32193d9955",
    "0x23618e81E3f5cdF7f54C3d65f7FBc0aBf5B21E8f",
    "0xa0Ee7A142d267C1f36714E4a8F75612F20a79720",
]


@dataclass
class Config:
    rpc_url: str = DEFAULT_RPC_URL
    request_timeout: int = 10
    watch_addresses: List[str] = field(default_factory=lambda: list(DEFAULT_WATCH_ADDRESSES))
    log_level: str = "WARNING"


def _parse_addresses(raw: str) -> List[str]:
    items = [part.strip() for part in raw.split(",") if part.strip()]
    return [require_address(item, "WATCH_ADDRESSES entry") for item in items]


def load_config() -> Config:
    """Load configuration from environment variables."""
    rpc_url = (
        os.getenv("RPC_URL") or os.getenv("NEXT_PUBLIC_RPC_URL") or DEFAULT_RPC_URL
    ).strip()
    timeout = int(os.getenv("REQUEST_TIMEOUT", "10"))
    if timeout <= 0:
        raise ValueError("REQUEST_TIMEOUT must be a positive integer.")
    log_level = os.getenv("LOG_LEVEL", "WARNING").strip().upper()

    watch_env = os.getenv("WATCH_ADDRESSES")
    watch = _parse_addresses(watch_env) if watch_env else list(DEFAULT_WATCH_ADDRESSES)

    return Config(
        rpc_url=rpc_url,
        request_timeout=timeout,
        watch_addresses=watch,
        log_level=log_level,
    )
