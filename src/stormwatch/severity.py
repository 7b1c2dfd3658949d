"""Mapping of CAP severity/certainty vocabulary onto alert levels."""

from __future__ import annotations

from enum import Enum


class AlertSeverity(str, Enum):
    WARNING = "warning"
    WATCH = "watch"
    ADVISORY = "advisory"


_WARNING_SEVERITIES = frozenset({"Extreme", "Severe"})

_RANK = {
    AlertSeverity.WARNING: 0,
    AlertSeverity.WATCH: 1,
    AlertSeverity.ADVISORY: 2,
}


def classify_severity(severity: str | None, certainty: str | None) -> AlertSeverity:
    """Classify a raw feed severity into warning, watch or advisory.

    Unknown values fall through to ``ADVISORY``.
    """
    if severity in _WARNING_SEVERITIES:
        return AlertSeverity.WARNING
    if severity == "Moderate" and certainty != "Unlikely":
        return AlertSeverity.WATCH
    return AlertSeverity.ADVISORY


def severity_rank(severity: AlertSeverity) -> int:
    """Sort key placing warnings first."""
    return _RANK[severity]
