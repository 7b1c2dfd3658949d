from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import pytest

from stormwatch.alerts import Alert
from stormwatch.severity import AlertSeverity

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class ManualClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


class FeedStub:
    """Stands in for the upstream feed behind an httpx.MockTransport."""

    def __init__(self, features: list[dict[str, Any]] | None = None) -> None:
        self.features = features or []
        self.status_code = 200
        self.body: bytes | None = None
        self.error: Exception | None = None
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.body is not None:
            return httpx.Response(self.status_code, content=self.body)
        return httpx.Response(
            self.status_code,
            json={"type": "FeatureCollection", "features": self.features},
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def feed_stub() -> FeedStub:
    return FeedStub()


@pytest.fixture
def make_feature(clock: ManualClock):
    def factory(
        alert_id: str,
        severity: str = "Severe",
        certainty: str = "Likely",
        effective: str | None = None,
        expires: str | None = None,
        status: str = "Actual",
        **extra: Any,
    ) -> dict[str, Any]:
        properties = {
            "headline": f"{alert_id} headline",
            "description": f"{alert_id} description",
            "severity": severity,
            "certainty": certainty,
            "urgency": "Expected",
            "event": f"{alert_id} event",
            "effective": effective or (clock.now - timedelta(hours=1)).isoformat(),
            "expires": expires or (clock.now + timedelta(hours=2)).isoformat(),
            "status": status,
        }
        properties.update(extra)
        return {"id": alert_id, "type": "Feature", "properties": properties}

    return factory


@pytest.fixture
def make_alert(clock: ManualClock):
    def factory(
        alert_id: str,
        location_id: str = "loc-1",
        started_hours_ago: float = 1,
        headline: str = "Headline",
    ) -> Alert:
        start = clock.now - timedelta(hours=started_hours_ago)
        return Alert(
            id=alert_id,
            location_id=location_id,
            severity=AlertSeverity.WARNING,
            headline=headline,
            description="",
            start_time=start,
            end_time=start + timedelta(hours=48),
            is_active=True,
        )

    return factory
