"""In-memory TTL caches for quotes.

Three independent namespaces with their own lifetimes:
- quotes: successful aggregate quotes (short-lived)
- no_route: aggregate no-route results (longer, upstreams fail deterministically)
- negative: (provider, pair) combinations a provider rejected as unsupported
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from routerex.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class TTLCache:
    """Dictionary cache with per-entry expiry."""

    def __init__(self, name: str, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.name = name
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def purge_expired(self) -> int:
        """Drop expired entries. Returns the number removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now >= e.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


class CacheStore:
    """Process-wide quote caches with an explicit reset lifecycle."""

    def __init__(
        self,
        quote_ttl: float = 5.0,
        no_route_ttl: float = 30.0,
        negative_ttl: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.quotes = TTLCache("quotes", quote_ttl, clock)
        self.no_route = TTLCache("no_route", no_route_ttl, clock)
        self.negative = TTLCache("negative", negative_ttl, clock)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "CacheStore":
        settings = settings or get_settings()
        return cls(
            quote_ttl=settings.quote_cache_ttl_seconds,
            no_route_ttl=settings.no_route_cache_ttl_seconds,
            negative_ttl=settings.negative_cache_ttl_seconds,
        )

    def reset(self) -> None:
        """Clear all namespaces."""
        self.quotes.clear()
        self.no_route.clear()
        self.negative.clear()

    @staticmethod
    def negative_key(provider: str, from_chain_id, to_chain_id, from_token: str, to_token: str) -> str:
        pair = json.dumps(
            {
                "originChainId": from_chain_id,
                "destinationChainId": to_chain_id,
                "originCurrency": from_token,
                "destinationCurrency": to_token,
            },
            sort_keys=True,
        )
        return f"{provider}:{pair}"

    def is_negative(self, provider: str, from_chain_id, to_chain_id, from_token: str, to_token: str) -> bool:
        key = self.negative_key(provider, from_chain_id, to_chain_id, from_token, to_token)
        return self.negative.get(key) is not None

    def mark_negative(self, provider: str, from_chain_id, to_chain_id, from_token: str, to_token: str) -> None:
        key = self.negative_key(provider, from_chain_id, to_chain_id, from_token, to_token)
        self.negative.set(key, True)
        logger.info(f"Negative-cached {provider} pair {from_chain_id}:{from_token} -> {to_chain_id}:{to_token}")


_cache_store: Optional[CacheStore] = None


def get_cache_store() -> CacheStore:
    """Get the process-wide cache store."""
    global _cache_store
    if _cache_store is None:
        _cache_store = CacheStore.from_settings()
    return _cache_store
