from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

import httpx
from pydantic import ValidationError

from ..config import ExportConfiguration
from ..constants import EXPORTER_CONFIG_KEY, READ_LOGS_PAGE_SIZE, LogLevel
from ..errors import BadRequestError, HarperError
from ..logging import ExporterLogger
from ..models import LogRecord, MetricsSnapshot
from ..transport import JSON_HEADERS, decode_body, send


class HarperOperations:
    """Thin client for the HarperDB operations API."""

    def __init__(self, http: httpx.AsyncClient, operations_url: str) -> None:
        self._http = http
        self._url = operations_url.rstrip("/") + "/"

    async def run(self, operation: Dict[str, Any]) -> Any:
        name = str(operation.get("operation", "unknown"))
        response = await send(self._http, "POST", self._url, payload=operation, headers=dict(JSON_HEADERS))
        body = decode_body(response)
        if not response.is_success:
            detail = body.get("error") if isinstance(body, dict) else body
            raise HarperError(name, str(detail or response.reason_phrase), status_code=response.status_code)
        return body


class HarperTelemetrySource:
    """
    Reads logs and system information from HarperDB.

    Logs are filtered by level in the query itself. Percentage sampling is not
    applied here; the export job samples the batch it receives.
    """

    def __init__(
        self,
        operations: HarperOperations,
        logger: ExporterLogger,
        log_level: LogLevel = LogLevel.ALL,
        sample_fraction: float = 1.0,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        page_size: int = READ_LOGS_PAGE_SIZE,
    ) -> None:
        self._operations = operations
        self._logger = logger
        self._now = now
        self._page_size = page_size
        self.log_level = log_level
        self.sample_fraction = sample_fraction
        self._last_log_poll = now()

    def update_settings(self, log_level: LogLevel, sample_fraction: float) -> None:
        self.log_level = log_level
        self.sample_fraction = sample_fraction

    async def get_logs(self) -> List[LogRecord]:
        since = self._last_log_poll
        self._last_log_poll = self._now()

        if self.sample_fraction == 0:
            self._logger.debug("logs_fetch_skipped", reason="sample_fraction_zero")
            return []

        self._logger.info(
            "logs_fetch",
            log_level=self.log_level.value,
            sample_fraction=self.sample_fraction,
            since=since.isoformat(),
        )
        read_log: Dict[str, Any] = {
            "operation": "read_log",
            "start": 0,
            "limit": self._page_size,
            "from": since.isoformat(),
        }
        if self.log_level != LogLevel.ALL:
            read_log["level"] = self.log_level.value

        rows: List[Dict[str, Any]] = []
        while True:
            page = await self._operations.run(dict(read_log))
            if not page:
                break
            rows.extend(page)
            read_log["start"] += self._page_size

        records: List[LogRecord] = []
        for row in rows:
            try:
                records.append(parse_log_record(row))
            except ValueError as exc:
                self._logger.warning("log_record_skipped", error=str(exc), thread=row.get("thread"))
                continue
        return records

    async def get_system_info(self) -> MetricsSnapshot:
        info = await self._operations.run(
            {"operation": "system_information", "attributes": ["memory", "cpu"]}
        )
        return parse_system_info(info or {}, self._now())


class HarperConfigStore:
    """Exporter configuration kept in a HarperDB table under a single key."""

    def __init__(
        self,
        operations: HarperOperations,
        database: str,
        table: str,
        key: str = EXPORTER_CONFIG_KEY,
    ) -> None:
        self._operations = operations
        self.database = database
        self.table = table
        self.key = key

    async def get(self) -> Optional[ExportConfiguration]:
        rows = await self._operations.run(
            {
                "operation": "search_by_id",
                "database": self.database,
                "table": self.table,
                "ids": [self.key],
                "get_attributes": ["*"],
            }
        )
        if not rows:
            return None
        try:
            return ExportConfiguration.model_validate(rows[0])
        except ValidationError as exc:
            raise HarperError("search_by_id", f"stored configuration is invalid: {_describe(exc)}") from exc

    async def put(self, payload: Mapping[str, Any]) -> ExportConfiguration:
        """Validate and store a configuration update."""
        try:
            config = ExportConfiguration.model_validate(dict(payload))
        except ValidationError as exc:
            raise BadRequestError(_describe(exc)) from exc

        await self._operations.run(
            {
                "operation": "upsert",
                "database": self.database,
                "table": self.table,
                "records": [{"id": self.key, **config.to_record()}],
            }
        )
        return config


def parse_log_record(row: Mapping[str, Any]) -> LogRecord:
    tags = row.get("tags") or ()
    if isinstance(tags, str):
        tags = (tags,)
    return LogRecord(
        timestamp=parse_timestamp(row.get("timestamp")),
        thread=str(row.get("thread") or ""),
        level=str(row.get("level") or ""),
        tags=tuple(str(tag) for tag in tags),
        message=str(row.get("message") or ""),
    )


def parse_timestamp(value: Any) -> datetime:
    """ISO-8601 strings and epoch milliseconds both appear in HarperDB logs."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    elif isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise ValueError(f"Unsupported log timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_system_info(info: Mapping[str, Any], taken_at: datetime) -> MetricsSnapshot:
    memory = info.get("memory") or {}
    cpu = info.get("cpu") or {}
    load = cpu.get("current_load") or cpu.get("currentLoad") or {}
    return MetricsSnapshot(
        memory_free=float(memory.get("free") or 0),
        memory_used=float(memory.get("used") or 0),
        cpu_avg_load=float(load.get("avgLoad") or 0),
        cpu_current_load=float(load.get("currentLoad") or 0),
        cpu_current_load_user=float(load.get("currentLoadUser") or 0),
        cpu_current_load_system=float(load.get("currentLoadSystem") or 0),
        timestamp=taken_at,
    )


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "payload"
        parts.append(f"{field}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)
