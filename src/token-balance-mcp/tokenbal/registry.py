import copy
import logging
from dataclasses import asdict
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, Protocol, TypeVar

from .errors import ValidationError
from .models import NftMetadata, TokenMetadata, address_key

logger = logging.getLogger(__name__)

ERC20_KEY = "erc20_tokens"
ERC721_KEY = "erc721_tokens"

T = TypeVar("T", TokenMetadata, NftMetadata)


class KeyValueStore(Protocol):
    def load(self, key: str) -> Optional[List[Dict[str, Any]]]:
        ...

    def save(self, key: str, items: List[Dict[str, Any]]) -> None:
        ...


class InMemoryStore:
    """Simple in-memory store; values are copied in and out."""

    def __init__(self) -> None:
        self._memory: Dict[str, List[Dict[str, Any]]] = {}

    def load(self, key: str) -> Optional[List[Dict[str, Any]]]:
        items = self._memory.get(key)
        return copy.deepcopy(items) if items is not None else None

    def save(self, key: str, items: List[Dict[str, Any]]) -> None:
        self._memory[key] = copy.deepcopy(items)


class TokenRegistry(Generic[T]):
    """Ordered set of metadata records keyed by lowercase address, persisted on every change."""

    def __init__(self, store: KeyValueStore, key: str, parse: Callable[[Dict[str, Any]], T]) -> None:
        self.store = store
        self.key = key
        self._records: Dict[str, T] = {}
        for item in store.load(key) or []:
            try:
                record = parse(item)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed %s entry %r: %s", key, item, exc)
                continue
            self._records.setdefault(address_key(record.address), record)

    @classmethod
    def erc20(cls, store: KeyValueStore) -> "TokenRegistry[TokenMetadata]":
        return cls(store, ERC20_KEY, TokenMetadata.from_dict)

    @classmethod
    def erc721(cls, store: KeyValueStore) -> "TokenRegistry[NftMetadata]":
        return cls(store, ERC721_KEY, NftMetadata.from_dict)

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and address_key(address) in self._records

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)

    def get(self, address: str) -> Optional[T]:
        return self._records.get(address_key(address))

    def first(self) -> Optional[T]:
        return next(iter(self._records.values()), None)

    def add(self, record: T) -> None:
        key = address_key(record.address)
        if key in self._records:
            raise ValidationError(f"Token {record.address} is already registered.")
        self._records[key] = record
        self._persist()

    def remove(self, address: str) -> bool:
        removed = self._records.pop(address_key(address), None)
        if removed is not None:
            self._persist()
        return removed is not None

    def _persist(self) -> None:
        self.store.save(self.key, [asdict(record) for record in self._records.values()])
