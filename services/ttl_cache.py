"""
Generic keyed cache with a time-to-live.

A value is served only while ``now - fetched_at < ttl``. Stale entries are
not evicted; they stay visible through ``get_entry`` (for status reporting)
until the next ``set`` overwrites them. The same class backs access tokens
(per-entry TTL from the token response), planning reports and shipment lists.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Generic, Hashable, NamedTuple, Optional, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

Clock = Callable[[], float]


class CacheEntry(NamedTuple):
    fetched_at: float
    ttl_seconds: float
    value: object

    @property
    def expires_at(self) -> float:
        return self.fetched_at + self.ttl_seconds


class TtlCache(Generic[K, V]):
    def __init__(self, ttl_seconds: float, *, clock: Clock = time.time):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be greater than zero")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[K, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: K) -> Optional[V]:
        entry = self.get_entry(key)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at >= entry.ttl_seconds:
            return None
        return entry.value  # type: ignore[return-value]

    def get_entry(self, key: K) -> Optional[CacheEntry]:
        """Return the raw entry regardless of freshness."""
        with self._lock:
            return self._entries.get(key)

    def set(self, key: K, value: V, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._entries[key] = CacheEntry(self._clock(), ttl, value)

    def is_fresh(self, key: K) -> bool:
        return self.get(key) is not None

    def age_seconds(self, key: K) -> Optional[float]:
        entry = self.get_entry(key)
        if entry is None:
            return None
        return max(0.0, self._clock() - entry.fetched_at)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
