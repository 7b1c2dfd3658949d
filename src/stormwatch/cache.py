"""Short-lived in-memory cache of normalised alerts keyed by rounded point."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import Lock

from .alerts import Alert, utc_now

LOGGER = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(minutes=5)


def cache_key(lat: float, lon: float) -> str:
    """Round both coordinates to two decimals and join them with a comma.

    Points roughly a kilometre apart share one entry.
    """
    return f"{round(lat, 2):.2f},{round(lon, 2):.2f}"


@dataclass(frozen=True)
class CacheEntry:
    alerts: tuple[Alert, ...]
    fetched_at: datetime

    def is_fresh(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.fetched_at < ttl


class FreshnessCache:
    """TTL cache with lazy staleness checks and a bounded entry count."""

    def __init__(
        self,
        ttl: timedelta = DEFAULT_TTL,
        max_entries: int = 1000,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._lock = Lock()
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> CacheEntry | None:
        """Return the entry for ``key`` only while it is fresh."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None or not entry.is_fresh(self._clock(), self.ttl):
            return None
        return entry

    def peek(self, key: str) -> CacheEntry | None:
        """Return the entry for ``key`` whatever its age."""
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, alerts: Sequence[Alert]) -> CacheEntry:
        entry = CacheEntry(alerts=tuple(alerts), fetched_at=self._clock())
        with self._lock:
            self._entries.pop(key, None)
            if len(self._entries) >= self.max_entries:
                self._evict_oldest()
            self._entries[key] = entry
        return entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _evict_oldest(self) -> None:
        # dict order is write order since put() re-inserts the key
        count = max(1, self.max_entries // 10)
        for key in list(self._entries)[:count]:
            del self._entries[key]
        LOGGER.debug("Evicted %s cache entries", count)
