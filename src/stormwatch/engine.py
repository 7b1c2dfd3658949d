"""Fetch orchestration: cache lookup, upstream fetch, fallback and history."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from threading import Lock
from typing import Any

from .alerts import DEFAULT_SOURCE, Alert, normalise_features, utc_now
from .cache import FreshnessCache, cache_key
from .feed import AlertFeedClient, FeedError
from .scheduler import AlertCallback, SubscriptionRegistry
from .settings import Settings
from .state import HistoricalStore

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Refresh:
    alerts: list[Alert]
    fetched: bool
    location_id: str


class AlertEngine:
    """Owns the freshness cache, the historical store and the subscriptions.

    ``fetch_active`` is the error boundary for upstream failures: it logs
    them and answers from the last cached result (fresh or not) or with an
    empty list. Concurrent misses on the same rounded point share a single
    upstream request.
    """

    def __init__(
        self,
        feed: AlertFeedClient,
        cache: FreshnessCache | None = None,
        history: HistoricalStore | None = None,
        registry: SubscriptionRegistry | None = None,
        clock: Callable[[], datetime] = utc_now,
        source: str = DEFAULT_SOURCE,
    ) -> None:
        self.feed = feed
        self.cache = cache if cache is not None else FreshnessCache(clock=clock)
        self.history = history if history is not None else HistoricalStore(clock=clock)
        self.registry = registry if registry is not None else SubscriptionRegistry()
        self.source = source
        self._clock = clock
        self._inflight_lock = Lock()
        self._inflight: dict[
            tuple[asyncio.AbstractEventLoop, str], asyncio.Future[_Refresh]
        ] = {}

    @classmethod
    def from_settings(
        cls, settings: Settings, clock: Callable[[], datetime] = utc_now
    ) -> "AlertEngine":
        feed = AlertFeedClient(
            base_url=settings.feed_base_url,
            user_agent=settings.feed_user_agent,
            timeout_seconds=settings.fetch_timeout_seconds,
            health_timeout_seconds=settings.health_timeout_seconds,
        )
        return cls(
            feed,
            cache=FreshnessCache(
                ttl=settings.cache_ttl,
                max_entries=settings.cache_max_entries,
                clock=clock,
            ),
            history=HistoricalStore(retention=settings.historical_retention, clock=clock),
            clock=clock,
            source=settings.feed_source_name,
        )

    async def fetch_active(self, lat: float, lon: float, location_id: str) -> list[Alert]:
        if not (math.isfinite(lat) and math.isfinite(lon)):
            LOGGER.warning("Ignoring fetch for invalid coordinates %s,%s", lat, lon)
            return []

        key = cache_key(lat, lon)
        entry = self.cache.get(key)
        if entry is not None:
            LOGGER.debug("Returning cached alerts for %s", key)
            return list(entry.alerts)

        # tasks belong to one event loop; callers on other loops fetch on their own
        inflight_key = (asyncio.get_running_loop(), key)
        with self._inflight_lock:
            task = self._inflight.get(inflight_key)
            if task is None:
                task = asyncio.ensure_future(self._refresh(key, lat, lon, location_id))
                self._inflight[inflight_key] = task
                task.add_done_callback(lambda done: self._forget(inflight_key, done))
            else:
                LOGGER.debug("Joining in-flight fetch for %s", key)

        refresh = await asyncio.shield(task)
        if not refresh.fetched or refresh.location_id == location_id:
            return list(refresh.alerts)

        alerts = [
            alert.model_copy(update={"location_id": location_id})
            for alert in refresh.alerts
        ]
        self.history.record(location_id, alerts)
        return alerts

    def _forget(
        self, inflight_key: tuple[asyncio.AbstractEventLoop, str], task: asyncio.Future[_Refresh]
    ) -> None:
        with self._inflight_lock:
            if self._inflight.get(inflight_key) is task:
                del self._inflight[inflight_key]

    async def _refresh(
        self, key: str, lat: float, lon: float, location_id: str
    ) -> _Refresh:
        LOGGER.info("Fetching alerts for %s", key)
        try:
            features = await self.feed.fetch_features(lat, lon)
        except FeedError as exc:
            LOGGER.error("Failed to fetch alerts for %s: %s", key, exc)
            previous = self.cache.peek(key)
            alerts = list(previous.alerts) if previous else []
            return _Refresh(alerts=alerts, fetched=False, location_id=location_id)

        alerts = normalise_features(
            features, location_id, now=self._clock(), source=self.source
        )
        self.cache.put(key, alerts)
        self.history.record(location_id, alerts)
        LOGGER.info("Fetched %s active alerts for %s", len(alerts), key)
        return _Refresh(alerts=alerts, fetched=True, location_id=location_id)

    def get_historical(self, location_id: str) -> list[Alert]:
        return self.history.get(location_id)

    def register_callback(self, key: str, callback: AlertCallback) -> None:
        self.registry.register(key, callback)

    def unregister_callback(self, key: str) -> None:
        self.registry.unregister(key)

    def clear_cache(self) -> None:
        self.cache.clear()

    def clear_historical(self, location_id: str | None = None) -> None:
        self.history.clear(location_id)

    async def health(self) -> dict[str, Any]:
        feed_ok = await self.feed.check_health()
        return {
            "status": "healthy" if feed_ok else "degraded",
            "timestamp": self._clock().isoformat(),
            "checks": {
                "feed": feed_ok,
                "cache_entries": len(self.cache),
                "historical_locations": len(self.history.locations()),
                "subscriptions": len(self.registry),
            },
        }
