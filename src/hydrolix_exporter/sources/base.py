from __future__ import annotations

from typing import List, Optional, Protocol

from ..config import ExportConfiguration
from ..constants import LogLevel
from ..models import LogRecord, MetricsSnapshot


class ConfigStore(Protocol):
    async def get(self) -> Optional[ExportConfiguration]:
        """Stored export configuration, or None when nothing was saved yet."""


class TelemetrySource(Protocol):
    def update_settings(self, log_level: LogLevel, sample_fraction: float) -> None:
        """Apply the level filter and sample fraction to subsequent reads."""

    async def get_logs(self) -> List[LogRecord]:
        """Log records since the previous call, in arrival order."""

    async def get_system_info(self) -> MetricsSnapshot:
        """Current memory and CPU figures."""
