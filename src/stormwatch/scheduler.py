"""Subscription registry and the periodic alert check."""

from __future__ import annotations

import asyncio
import inspect
import logging
import math
from collections.abc import Awaitable, Callable
from threading import Lock
from typing import TYPE_CHECKING

from .alerts import Alert
from .reporting import TickReport

if TYPE_CHECKING:
    from .engine import AlertEngine

LOGGER = logging.getLogger(__name__)

AlertCallback = Callable[[list[Alert]], Awaitable[None] | None]


def parse_location_key(key: str) -> tuple[float, float] | None:
    """Parse a ``"lat,lon"`` subscription key; ``None`` if it is not one."""
    parts = key.split(",")
    if len(parts) != 2:
        return None
    try:
        lat, lon = float(parts[0]), float(parts[1])
    except ValueError:
        return None
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None
    return lat, lon


class SubscriptionRegistry:
    """At most one callback per key; registering again replaces it."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._callbacks: dict[str, AlertCallback] = {}

    def register(self, key: str, callback: AlertCallback) -> None:
        with self._lock:
            self._callbacks[key] = callback

    def unregister(self, key: str) -> None:
        with self._lock:
            self._callbacks.pop(key, None)

    def snapshot(self) -> list[tuple[str, AlertCallback]]:
        with self._lock:
            return list(self._callbacks.items())

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._callbacks

    def __len__(self) -> int:
        with self._lock:
            return len(self._callbacks)


class AlertScheduler:
    """Check every registered location on a fixed period and notify callbacks."""

    def __init__(self, engine: "AlertEngine", interval_seconds: float = 300) -> None:
        self.engine = engine
        self.interval_seconds = interval_seconds
        self._in_flight = False

    async def run_once(self) -> TickReport:
        report = TickReport()
        if self._in_flight:
            LOGGER.warning("Previous alert check still running; skipping tick")
            report.overlapped = True
            return report.finish()

        self._in_flight = True
        try:
            for key, callback in self.engine.registry.snapshot():
                location = parse_location_key(key)
                if location is None:
                    report.record_skip()
                    continue
                lat, lon = location
                try:
                    alerts = await self.engine.fetch_active(lat, lon, key)
                    result = callback(alerts)
                    if inspect.isawaitable(result):
                        await result
                except Exception as exc:
                    LOGGER.exception("Failed to check alerts for location %s: %s", key, exc)
                    report.record_failure(key)
                else:
                    report.record_delivery()
        finally:
            self._in_flight = False
        return report.finish()

    async def run_forever(self) -> None:
        while True:
            LOGGER.info("Running scheduled alert check for all locations")
            report = await self.run_once()
            LOGGER.info("Processed cycle; %s", report.summary())
            await asyncio.sleep(self.interval_seconds)
