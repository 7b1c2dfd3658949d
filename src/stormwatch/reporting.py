"""Per-tick scheduler reporting."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any


@dataclass
class TickReport:
    started_at: float = field(default_factory=time.time)
    finished_at: float = field(default=0.0, init=False)
    delivered: int = 0
    skipped: int = 0
    failed: int = 0
    overlapped: bool = False
    failed_keys: list[str] = field(default_factory=list)

    def record_delivery(self) -> None:
        self.delivered += 1

    def record_skip(self) -> None:
        self.skipped += 1

    def record_failure(self, key: str) -> None:
        self.failed += 1
        self.failed_keys.append(key)

    def finish(self) -> "TickReport":
        self.finished_at = time.time()
        return self

    @property
    def duration_seconds(self) -> float:
        if self.finished_at and self.started_at:
            return self.finished_at - self.started_at
        return 0.0

    def summary(self) -> dict[str, Any]:
        return {
            "delivered": self.delivered,
            "skipped": self.skipped,
            "failed": self.failed,
            "failed_keys": list(self.failed_keys),
            "overlapped": self.overlapped,
            "duration_seconds": round(self.duration_seconds, 2),
        }
