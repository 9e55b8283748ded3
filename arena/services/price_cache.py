"""In-memory USD price cache with a fixed time-to-live.

Entries expire by age only. Expired entries are kept so the resolver can fall
back to the last known price when every upstream fails.
"""

import time
from dataclasses import dataclass
from typing import Callable


@dataclass
class CachedPrice:
    price: float
    fetched_at: float  # clock() value at write time


class PriceCache:
    """Process-wide price cache, last write wins."""

    def __init__(self, ttl_seconds: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CachedPrice] = {}

    def get(self, key: str) -> float | None:
        """Fresh price for ``key``, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at >= self.ttl_seconds:
            return None
        return entry.price

    def get_stale(self, key: str) -> float | None:
        """Last stored price regardless of age."""
        entry = self._entries.get(key)
        return entry.price if entry else None

    def set(self, key: str, price: float):
        self._entries[key] = CachedPrice(price=price, fetched_at=self._clock())

    def age(self, key: str) -> float | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        return self._clock() - entry.fetched_at

    def clear(self):
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
