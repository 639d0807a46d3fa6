from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from .config import DEFAULT_EXPORT_CONFIG, ExportConfiguration
from .constants import CONFIG_REFRESH_SECONDS
from .errors import ExporterError
from .hydrolix import HydrolixClient
from .logging import ExporterLogger
from .models import JobState, LogRecord
from .sampling import sample
from .sources import ConfigStore, TelemetrySource
from .stats import ExportStats

CallLater = Callable[[float, Callable[[], None]], Any]


@dataclass
class PollState:
    last_execution: Optional[float] = None
    last_config_refresh: Optional[float] = None
    active_interval: int = DEFAULT_EXPORT_CONFIG.poll_interval_seconds
    timer: Optional[Any] = None


class ExportJob:
    """
    Recurring collect-and-publish loop.

    The next cycle is armed only when the current one finishes, so two cycles
    never overlap. ``_arm`` is the only place a timer is created or cancelled.
    The configuration is re-read every ``config_refresh_seconds`` regardless of
    the poll interval; a changed interval takes effect from the next arm.
    """

    def __init__(
        self,
        client: HydrolixClient,
        source: TelemetrySource,
        config_store: ConfigStore,
        logger: ExporterLogger,
        *,
        config_refresh_seconds: float = CONFIG_REFRESH_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        call_later: Optional[CallLater] = None,
    ) -> None:
        self._client = client
        self._source = source
        self._config_store = config_store
        self._logger = logger
        self._config_refresh_seconds = config_refresh_seconds
        self._clock = clock
        self._call_later = call_later

        self.config: ExportConfiguration = DEFAULT_EXPORT_CONFIG
        self.state = JobState.IDLE
        self.poll_state = PollState()
        self.stats = ExportStats(job_id=logger.job_id)
        self._cycle: Optional[asyncio.Task] = None

    @property
    def current_cycle(self) -> Optional[asyncio.Task]:
        return self._cycle

    async def start(self) -> None:
        """
        Log in, bootstrap Hydrolix resources and run the first cycle.

        Bootstrap failures propagate and leave no timer armed.
        """
        config = await self._read_config()
        self._logger.info("export_job_starting", config=config.to_record())

        await self._client.init_session()

        self.poll_state.last_config_refresh = self._clock()
        self.poll_state.active_interval = config.poll_interval_seconds
        self._apply_config(config)
        await self.run_cycle()

    async def stop(self) -> None:
        if self.state == JobState.STOPPED:
            return
        self.state = JobState.STOPPED
        if self.poll_state.timer is not None:
            self.poll_state.timer.cancel()
            self.poll_state.timer = None
        if self._cycle is not None and not self._cycle.done():
            await self._cycle
        self._logger.info("export_job_stopped", uptime_ms=self.stats.uptime_ms(), **self.stats.summary())

    async def run_cycle(self) -> None:
        """Run one poll cycle, then arm the next one."""
        if self.state == JobState.STOPPED:
            return

        started = self._clock()
        self.state = JobState.POLLING
        try:
            with self._logger.stage("poll_cycle", cycle=self.stats.cycles + 1):
                await self._poll(started)
        except Exception as exc:
            self.stats.cycles_failed += 1
            self.stats.record_error("poll_cycle", str(exc))
            self._logger.error("poll_cycle_failed", error=str(exc), error_type=type(exc).__name__)
        finally:
            self.stats.cycles += 1
            if self.state != JobState.STOPPED:
                self.state = JobState.IDLE
                elapsed = self._clock() - started
                self._arm(max(0.0, self.poll_state.active_interval - elapsed))

    async def refresh_config(self, now: Optional[float] = None) -> bool:
        """
        Re-read the configuration and apply it.

        On a store failure the current configuration stays active and the
        refresh is retried on the next cycle.
        """
        now = self._clock() if now is None else now
        try:
            config = await self._read_config()
        except ExporterError as exc:
            self.stats.record_error("config_refresh", str(exc))
            self._logger.warning("config_refresh_failed", error=str(exc), error_type=type(exc).__name__)
            return False

        self.poll_state.last_config_refresh = now
        self.stats.config_refreshes += 1
        self._apply_config(config)
        self._logger.info("config_refreshed", config=config.to_record())
        return True

    async def _poll(self, now: float) -> None:
        if self._refresh_due(now):
            await self.refresh_config(now)

        self.poll_state.last_execution = now
        config = self.config

        try:
            await self._export_logs(config)
        except Exception as exc:
            self.stats.publish_failures += 1
            self.stats.record_error("logs", str(exc))
            self._logger.error("logs_export_failed", error=str(exc), error_type=type(exc).__name__)

        if config.include_system_info:
            snapshot = await self._source.get_system_info()
            self.stats.record_metrics(await self._client.publish_metrics(snapshot))

        self._logger.info("poll_cycle_complete", **self.stats.summary())

    async def _export_logs(self, config: ExportConfiguration) -> None:
        logs: List[LogRecord] = await self._source.get_logs()
        records = sample(logs, config.log_sample_fraction)
        success = await self._client.publish_logs(records)
        self.stats.record_logs(len(logs), len(records), success)

    def _refresh_due(self, now: float) -> bool:
        last = self.poll_state.last_config_refresh
        return last is None or now - last >= self._config_refresh_seconds

    def _apply_config(self, config: ExportConfiguration) -> None:
        self.config = config
        self._source.update_settings(config.log_level, config.log_sample_fraction)

        interval = config.poll_interval_seconds
        if interval == self.poll_state.active_interval:
            return

        self._logger.info(
            "poll_interval_changed",
            previous_seconds=self.poll_state.active_interval,
            current_seconds=interval,
        )
        self.poll_state.active_interval = interval
        self.stats.interval_changes += 1
        # Between cycles a timer is armed at the old interval; replace it.
        if self.poll_state.timer is not None:
            self._arm(interval)

    def _arm(self, delay: float) -> None:
        if self.poll_state.timer is not None:
            self.poll_state.timer.cancel()
        call_later = self._call_later or asyncio.get_running_loop().call_later
        self.poll_state.timer = call_later(delay, self._on_timer)
        self._logger.debug(
            "poll_timer_armed",
            delay_seconds=round(delay, 3),
            interval_seconds=self.poll_state.active_interval,
        )

    def _on_timer(self) -> None:
        self.poll_state.timer = None
        if self.state == JobState.STOPPED:
            return
        if self.state == JobState.POLLING:
            self._logger.warning("poll_cycle_overlap_skipped")
            return
        self._cycle = asyncio.ensure_future(self.run_cycle())

    async def _read_config(self) -> ExportConfiguration:
        return await self._config_store.get() or DEFAULT_EXPORT_CONFIG
