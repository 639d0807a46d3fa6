from __future__ import annotations

import asyncio
import signal
import sys
import uuid
from typing import Optional, Tuple

import httpx
from pydantic import ValidationError

from .config import ExporterSettings, HarperSettings, HydrolixSettings
from .constants import ExitCode
from .errors import ConfigError, ExporterError
from .hydrolix import HydrolixClient
from .job import ExportJob
from .logging import ExporterLogger
from .sources import HarperConfigStore, HarperOperations, HarperTelemetrySource


def main() -> int:
    """Main entry point."""
    return asyncio.run(async_main())


async def async_main() -> int:
    """Run the exporter until SIGINT/SIGTERM."""
    job_id = f"hydrolix-exporter-{uuid.uuid4().hex[:8]}"

    try:
        exporter_settings = ExporterSettings()
        hydrolix_settings = HydrolixSettings()
        harper_settings = HarperSettings()
    except ValidationError as exc:
        ExporterLogger(job_id).error("exporter_config_invalid", error=str(exc))
        return int(ConfigError.exit_code)

    logger = ExporterLogger(job_id, min_level=exporter_settings.log_level)
    logger.info(
        "exporter_starting",
        hydrolix_url=hydrolix_settings.instance_url,
        harper_url=harper_settings.operations_url,
        project=hydrolix_settings.project_name,
    )

    async with httpx.AsyncClient(
        timeout=harper_settings.http_timeout_seconds,
        auth=_harper_auth(harper_settings),
    ) as harper_http:
        client = HydrolixClient(hydrolix_settings, logger)
        operations = HarperOperations(harper_http, harper_settings.operations_url)
        job = ExportJob(
            client,
            HarperTelemetrySource(operations, logger),
            HarperConfigStore(operations, harper_settings.config_database, harper_settings.config_table),
            logger,
            config_refresh_seconds=exporter_settings.config_refresh_seconds,
        )

        try:
            try:
                await job.start()
            except ExporterError as exc:
                logger.error("export_job_startup_failed", error=str(exc), error_type=type(exc).__name__)
                return int(exc.exit_code)

            stop = asyncio.Event()
            _install_signal_handlers(stop)
            try:
                await stop.wait()
            finally:
                await job.stop()
        finally:
            await client.close()

    return int(ExitCode.SUCCESS)


def _harper_auth(settings: HarperSettings) -> Optional[Tuple[str, str]]:
    if not settings.username:
        return None
    return settings.username, settings.password.get_secret_value()


def _install_signal_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops have no signal handler support.
            pass


if __name__ == "__main__":
    sys.exit(main())
