"""
Watched-token controllers: registration, the active token, per-token wallet
text and balance refresh.

Balance refreshes are tied to a generation. Starting a refresh, changing
the active token or a wallet, or removing a token bumps it; a refresh that
resolves after its generation was superseded is dropped instead of written.
"""

import logging
from typing import Dict, Generic, Optional, Set

from .errors import RpcError, ValidationError
from .formatting import format_units
from .models import BalanceReading, NftMetadata, TokenMetadata, address_key, is_address, require_address
from .registry import T, TokenRegistry
from .service import TokenQueryService

logger = logging.getLogger(__name__)


class WatchedTokens(Generic[T]):
    def __init__(self, service: TokenQueryService, registry: TokenRegistry[T]) -> None:
        self.service = service
        self.registry = registry
        first = registry.first()
        self._active: Optional[str] = first.address if first else None
        self._wallets: Dict[str, str] = {}
        self._balances: Dict[str, BalanceReading] = {}
        self._pending: Set[str] = set()
        self._generation = 0

    # -- registration -----------------------------------------------------

    def register(self, address_text: str) -> T:
        address = require_address(address_text, "token address")
        key = address_key(address)
        if address in self.registry:
            raise ValidationError(f"Token {address} is already registered.")
        if key in self._pending:
            raise ValidationError(f"Registration of {address} is already in progress.")

        self._pending.add(key)
        try:
            record = self._fetch_metadata(address)
        finally:
            self._pending.discard(key)

        self.registry.add(record)
        self.set_active(record.address)
        logger.info("Registered %s", record)
        return record

    def remove(self, address: str) -> None:
        key = address_key(address)
        if not self.registry.remove(address):
            return
        self._balances.pop(key, None)
        self._wallets.pop(key, None)
        if self._active is not None and address_key(self._active) == key:
            first = self.registry.first()
            self._active = first.address if first else None
        self._bump()

    # -- targeting --------------------------------------------------------

    @property
    def active(self) -> Optional[T]:
        return self.registry.get(self._active) if self._active else None

    @property
    def generation(self) -> int:
        return self._generation

    def set_active(self, address: str) -> None:
        record = self.registry.get(address)
        if record is None:
            raise ValidationError(f"Token {address} is not registered.")
        self._active = record.address
        self._bump()

    def wallet(self, token_address: str) -> str:
        return self._wallets.get(address_key(token_address), "")

    def set_wallet(self, token_address: str, text: str) -> None:
        if token_address not in self.registry:
            raise ValidationError(f"Token {token_address} is not registered.")
        self._wallets[address_key(token_address)] = (text or "").strip()
        self._bump()

    def _bump(self) -> None:
        self._generation += 1

    # -- balances ---------------------------------------------------------

    def refresh(self) -> Optional[BalanceReading]:
        """Refresh the active token's balance for its wallet.

        Returns the stored reading, or None when there is nothing to refresh
        or the result was superseded while in flight.
        """
        record = self.active
        if record is None:
            return None
        # Each refresh supersedes any still in flight.
        self._bump()
        generation = self._generation
        wallet = self.wallet(record.address)

        if not is_address(wallet):
            reading = BalanceReading(record.address, wallet, None, error="wallet address required")
            return self._store(generation, reading)

        try:
            amount = self.service.fetch_balance(record.address, wallet)
            reading = BalanceReading(record.address, wallet, amount)
        except (RpcError, ValueError) as exc:
            logger.warning("balanceOf failed for token %s wallet %s: %s", record.address, wallet, exc)
            reading = BalanceReading(record.address, wallet, None, error=str(exc))
        return self._store(generation, reading)

    def _store(self, generation: int, reading: BalanceReading) -> Optional[BalanceReading]:
        if generation != self._generation:
            logger.debug(
                "Dropping stale balance for %s (generation %d, now %d)",
                reading.token_address,
                generation,
                self._generation,
            )
            return None
        self._balances[address_key(reading.token_address)] = reading
        return reading

    def balance(self, token_address: str) -> Optional[BalanceReading]:
        return self._balances.get(address_key(token_address))

    def formatted_balance(self, token_address: str) -> Optional[str]:
        reading = self.balance(token_address)
        record = self.registry.get(token_address)
        if reading is None or record is None or reading.amount is None:
            return None
        return self._format(reading.amount, record)

    def updated_at(self, token_address: str) -> Optional[float]:
        reading = self.balance(token_address)
        return reading.updated_at if reading else None

    def _fetch_metadata(self, address: str) -> T:
        raise NotImplementedError

    def _format(self, amount: int, record: T) -> str:
        raise NotImplementedError


class TokenBalances(WatchedTokens[TokenMetadata]):
    """ERC-20 tokens; decimals() is required at registration."""

    def _fetch_metadata(self, address: str) -> TokenMetadata:
        return self.service.fetch_fungible_metadata(address)

    def _format(self, amount: int, record: TokenMetadata) -> str:
        return format_units(amount, record.decimals)


class NftBalances(WatchedTokens[NftMetadata]):
    def _fetch_metadata(self, address: str) -> NftMetadata:
        return self.service.fetch_nft_metadata(address)

    def _format(self, amount: int, record: NftMetadata) -> str:
        return str(amount)
