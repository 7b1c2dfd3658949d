"""Alert entity and feed record normalisation."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

from .severity import AlertSeverity, classify_severity

LOGGER = logging.getLogger(__name__)

DEFAULT_SOURCE = "National Weather Service"


class Alert(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    location_id: str
    severity: AlertSeverity
    headline: str
    description: str
    event: str = ""
    urgency: str = ""
    start_time: datetime
    end_time: datetime
    source: str = DEFAULT_SOURCE
    is_active: bool

    @model_validator(mode="after")
    def _check_window(self) -> "Alert":
        if self.end_time < self.start_time:
            raise ValueError(f"alert {self.id} expires before it becomes effective")
        return self


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 feed timestamp into an aware datetime.

    Naive values are taken as UTC. Anything else raises ``ValueError``.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"missing or non-string timestamp: {value!r}")
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_actual(feature: Mapping[str, Any]) -> bool:
    properties = feature.get("properties")
    if not isinstance(properties, Mapping):
        return False
    status = properties.get("status")
    return isinstance(status, str) and status.strip().lower() == "actual"


def parse_feed_record(
    feature: Mapping[str, Any],
    location_id: str,
    now: datetime,
    source: str = DEFAULT_SOURCE,
) -> Alert:
    if not isinstance(feature, Mapping):
        raise TypeError("Feed record must be a mapping")

    properties = feature.get("properties") or {}
    if not isinstance(properties, Mapping):
        raise TypeError("Feed record properties must be a mapping")
    alert_id = feature.get("id") or properties.get("id")
    if not alert_id:
        raise ValueError("feed record has no identifier")

    start_time = parse_timestamp(properties.get("effective"))
    end_time = parse_timestamp(properties.get("expires"))

    return Alert(
        id=str(alert_id),
        location_id=location_id,
        severity=classify_severity(
            properties.get("severity"), properties.get("certainty")
        ),
        headline=str(properties.get("headline") or properties.get("event") or ""),
        description=str(properties.get("description") or ""),
        event=str(properties.get("event") or ""),
        urgency=str(properties.get("urgency") or ""),
        start_time=start_time,
        end_time=end_time,
        source=source,
        is_active=now < end_time,
    )


def normalise_features(
    features: Iterable[Mapping[str, Any]],
    location_id: str,
    now: datetime | None = None,
    source: str = DEFAULT_SOURCE,
) -> list[Alert]:
    """Convert raw feed features into active alerts, preserving feed order.

    Drafts, exercises and tests are dropped, as is any record whose
    identifier or timestamps cannot be read. Expired alerts are dropped last.
    """
    now = now or utc_now()
    alerts: list[Alert] = []
    for feature in features:
        if not isinstance(feature, Mapping) or not is_actual(feature):
            continue
        try:
            alert = parse_feed_record(feature, location_id, now, source)
        except (TypeError, ValueError) as exc:
            LOGGER.warning(
                "Dropping malformed alert %s for %s: %s",
                feature.get("id"),
                location_id,
                exc,
            )
            continue
        if alert.is_active:
            alerts.append(alert)
    return alerts


def new_alerts(seen_ids: Iterable[str], alerts: Iterable[Alert]) -> list[Alert]:
    """Return the alerts whose identifier is not in ``seen_ids``."""
    seen = set(seen_ids)
    return [alert for alert in alerts if alert.id not in seen]
