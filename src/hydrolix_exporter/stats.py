from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass
class ExportStats:
    """Running counters for one export job; logged with each cycle summary."""

    job_id: str
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    cycles: int = 0
    cycles_failed: int = 0
    config_refreshes: int = 0
    interval_changes: int = 0

    logs_collected: int = 0
    logs_published: int = 0
    metrics_published: int = 0
    publish_failures: int = 0

    last_error: Optional[Dict[str, str]] = None

    def record_logs(self, collected: int, published: int, success: bool) -> None:
        self.logs_collected += collected
        if success:
            self.logs_published += published
        else:
            self.publish_failures += 1

    def record_metrics(self, success: bool) -> None:
        if success:
            self.metrics_published += 1
        else:
            self.publish_failures += 1

    def record_error(self, stage: str, error: str) -> None:
        self.last_error = {"stage": stage, "error": error}

    def uptime_ms(self) -> int:
        elapsed = datetime.now(timezone.utc) - self.start_time
        return int(elapsed.total_seconds() * 1000)

    def summary(self) -> Dict[str, Any]:
        return {
            "cycles": self.cycles,
            "cycles_failed": self.cycles_failed,
            "logs_collected": self.logs_collected,
            "logs_published": self.logs_published,
            "metrics_published": self.metrics_published,
            "publish_failures": self.publish_failures,
        }
