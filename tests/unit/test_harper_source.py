from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import httpx
import pytest

from fakes import DummyHydrolixHTTP
from hydrolix_exporter.constants import LogLevel
from hydrolix_exporter.errors import BadRequestError, HarperError
from hydrolix_exporter.sources import HarperConfigStore, HarperOperations, HarperTelemetrySource
from hydrolix_exporter.sources.harper import parse_system_info, parse_timestamp

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class DummyOperations:
    def __init__(self, *responses: Any) -> None:
        self.responses = list(responses)
        self.operations: List[Dict[str, Any]] = []

    async def run(self, operation: Dict[str, Any]) -> Any:
        self.operations.append(operation)
        return self.responses.pop(0) if self.responses else []


class SteppingClock:
    def __init__(self) -> None:
        self.now = T0

    def __call__(self) -> datetime:
        return self.now


def _row(i: int) -> Dict[str, Any]:
    return {
        "timestamp": f"2024-05-01T12:00:{i:02d}.000Z",
        "thread": "http/1",
        "level": "error",
        "tags": ["custom-function"],
        "message": f"row {i}",
    }


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.mark.anyio
async def test_get_logs_paginates_until_empty_page(logger, clock) -> None:
    operations = DummyOperations([_row(0), _row(1)], [_row(2)], [])
    source = HarperTelemetrySource(operations, logger, now=clock, page_size=2)

    records = await source.get_logs()

    assert [r.message for r in records] == ["row 0", "row 1", "row 2"]
    assert [op["start"] for op in operations.operations] == [0, 2, 4]
    assert all(op["limit"] == 2 for op in operations.operations)
    assert records[0].timestamp == T0
    assert records[0].tags == ("custom-function",)


@pytest.mark.anyio
async def test_level_filter_omitted_for_all(logger, clock) -> None:
    operations = DummyOperations([])
    source = HarperTelemetrySource(operations, logger, now=clock)

    await source.get_logs()

    assert operations.operations[0]["operation"] == "read_log"
    assert "level" not in operations.operations[0]


@pytest.mark.anyio
async def test_level_filter_sent_for_specific_level(logger, clock) -> None:
    operations = DummyOperations([])
    source = HarperTelemetrySource(operations, logger, now=clock)
    source.update_settings(LogLevel.ERROR, 0.5)

    await source.get_logs()

    assert operations.operations[0]["level"] == "error"


@pytest.mark.anyio
async def test_get_logs_reads_from_previous_poll(logger, clock) -> None:
    operations = DummyOperations([], [])
    source = HarperTelemetrySource(operations, logger, now=clock)

    clock.now = T0 + timedelta(seconds=60)
    await source.get_logs()
    clock.now = T0 + timedelta(seconds=120)
    await source.get_logs()

    assert operations.operations[0]["from"] == T0.isoformat()
    assert operations.operations[1]["from"] == (T0 + timedelta(seconds=60)).isoformat()


@pytest.mark.anyio
async def test_zero_fraction_skips_query_but_advances_window(logger, clock) -> None:
    operations = DummyOperations([])
    source = HarperTelemetrySource(operations, logger, now=clock)
    source.update_settings(LogLevel.ALL, 0.0)

    clock.now = T0 + timedelta(seconds=60)
    assert await source.get_logs() == []
    assert operations.operations == []

    source.update_settings(LogLevel.ALL, 1.0)
    clock.now = T0 + timedelta(seconds=120)
    await source.get_logs()
    assert operations.operations[0]["from"] == (T0 + timedelta(seconds=60)).isoformat()


@pytest.mark.anyio
async def test_get_system_info_maps_metrics(logger, clock) -> None:
    operations = DummyOperations(
        {
            "memory": {"free": 100, "used": 300},
            "cpu": {
                "current_load": {
                    "avgLoad": 0.5,
                    "currentLoad": 40,
                    "currentLoadUser": 30,
                    "currentLoadSystem": 10,
                }
            },
        }
    )
    source = HarperTelemetrySource(operations, logger, now=clock)

    snapshot = await source.get_system_info()

    assert operations.operations[0] == {"operation": "system_information", "attributes": ["memory", "cpu"]}
    assert snapshot.memory_used == 300.0
    assert snapshot.cpu_current_load_system == 10.0
    assert snapshot.timestamp == T0


def test_parse_system_info_accepts_camel_case_cpu_key() -> None:
    snapshot = parse_system_info({"cpu": {"currentLoad": {"currentLoad": 12}}}, T0)

    assert snapshot.cpu_current_load == 12.0
    assert snapshot.memory_free == 0.0


@pytest.mark.parametrize(
    "value",
    [
        "2024-05-01T12:00:00Z",
        "2024-05-01T12:00:00+00:00",
        "2024-05-01T12:00:00",
        1714564800000,
        T0,
    ],
)
def test_parse_timestamp_variants(value) -> None:
    assert parse_timestamp(value) == T0


def test_parse_timestamp_rejects_missing() -> None:
    with pytest.raises(ValueError):
        parse_timestamp(None)


@pytest.mark.anyio
async def test_config_store_get() -> None:
    operations = DummyOperations(
        [{"id": "hydrolix", "logLevel": "info", "includeSystemInfo": False, "pollInterval": 30, "logIngestPercentage": 0.5}]
    )
    store = HarperConfigStore(operations, "HydrolixExporter", "HydrolixExporterConfiguration")

    config = await store.get()

    assert config.poll_interval_seconds == 30
    assert config.log_level == LogLevel.INFO
    assert operations.operations[0]["operation"] == "search_by_id"
    assert operations.operations[0]["ids"] == ["hydrolix"]


@pytest.mark.anyio
async def test_config_store_get_missing_row() -> None:
    store = HarperConfigStore(DummyOperations([]), "db", "table")

    assert await store.get() is None


@pytest.mark.anyio
async def test_config_store_get_invalid_row() -> None:
    store = HarperConfigStore(DummyOperations([{"id": "hydrolix", "pollInterval": 0}]), "db", "table")

    with pytest.raises(HarperError, match="pollInterval"):
        await store.get()


@pytest.mark.anyio
async def test_config_store_put_upserts_validated_record() -> None:
    operations = DummyOperations({"message": "upserted 1 of 1 records"})
    store = HarperConfigStore(operations, "db", "table")

    config = await store.put({"logLevel": "WARN", "pollInterval": 120})

    assert config.poll_interval_seconds == 120
    assert operations.operations[0] == {
        "operation": "upsert",
        "database": "db",
        "table": "table",
        "records": [
            {
                "id": "hydrolix",
                "logLevel": "warn",
                "includeSystemInfo": True,
                "pollInterval": 120,
                "logIngestPercentage": 1.0,
            }
        ],
    }


@pytest.mark.anyio
@pytest.mark.parametrize("payload", [{"pollInterval": 4000}, {"logIngestPercentage": 2}])
async def test_config_store_put_rejects_invalid(payload) -> None:
    operations = DummyOperations()
    store = HarperConfigStore(operations, "db", "table")

    with pytest.raises(BadRequestError) as excinfo:
        await store.put(payload)

    assert excinfo.value.status_code == 400
    assert operations.operations == []


@pytest.mark.anyio
async def test_operations_raise_harper_error_on_failure() -> None:
    http = DummyHydrolixHTTP()
    http.always(("POST", "/"), httpx.Response(403, json={"error": "not authorized"}))
    operations = HarperOperations(http, "http://harper:9925")

    with pytest.raises(HarperError, match="not authorized") as excinfo:
        await operations.run({"operation": "read_log"})

    assert excinfo.value.status_code == 403
    assert http.requests[0]["json"] == {"operation": "read_log"}


@pytest.mark.anyio
async def test_unparsable_row_is_skipped_and_rest_of_batch_kept(logger, clock, capsys) -> None:
    bad = {**_row(1), "timestamp": None}
    operations = DummyOperations([_row(0), bad, _row(2)])
    source = HarperTelemetrySource(operations, logger, now=clock)

    records = await source.get_logs()

    assert [r.message for r in records] == ["row 0", "row 2"]
    lines = [json.loads(line) for line in capsys.readouterr().err.splitlines()]
    skipped = [line for line in lines if line["message"] == "log_record_skipped"]
    assert len(skipped) == 1
    assert "timestamp" in skipped[0]["error"]
