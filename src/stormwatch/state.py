"""Rolling per-location history of alerts seen by the engine."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from threading import Lock

from .alerts import Alert, utc_now

DEFAULT_RETENTION = timedelta(hours=24)


def prune_expired(
    alerts: Iterable[Alert], now: datetime, retention: timedelta
) -> list[Alert]:
    """Keep alerts that became effective less than ``retention`` ago."""
    return [alert for alert in alerts if now - alert.start_time < retention]


def merge_by_id(existing: Iterable[Alert], incoming: Iterable[Alert]) -> list[Alert]:
    """Merge two alert lists by id; incoming copies win, first-seen order is kept."""
    merged: dict[str, Alert] = {alert.id: alert for alert in existing}
    for alert in incoming:
        merged[alert.id] = alert
    return list(merged.values())


class HistoricalStore:
    """In-memory, lock-guarded map of location id to recently seen alerts."""

    def __init__(
        self,
        retention: timedelta = DEFAULT_RETENTION,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.retention = retention
        self._clock = clock
        self._lock = Lock()
        self._history: dict[str, list[Alert]] = {}

    def record(self, location_id: str, alerts: Iterable[Alert]) -> None:
        with self._lock:
            merged = merge_by_id(self._history.get(location_id, []), alerts)
            kept = prune_expired(merged, self._clock(), self.retention)
            if kept:
                self._history[location_id] = kept
            else:
                self._history.pop(location_id, None)

    def get(self, location_id: str) -> list[Alert]:
        with self._lock:
            alerts = list(self._history.get(location_id, []))
        return prune_expired(alerts, self._clock(), self.retention)

    def clear(self, location_id: str | None = None) -> None:
        with self._lock:
            if location_id is None:
                self._history.clear()
            else:
                self._history.pop(location_id, None)

    def locations(self) -> list[str]:
        with self._lock:
            return list(self._history)
