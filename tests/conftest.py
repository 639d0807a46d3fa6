from __future__ import annotations

import sys
from pathlib import Path

# Add src and the shared fakes to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

import pytest

from fakes import DummyHydrolixHTTP, FakeClock, FakeTimer
from hydrolix_exporter.config import HydrolixSettings
from hydrolix_exporter.logging import ExporterLogger


@pytest.fixture(params=["asyncio"])
def anyio_backend(request):
    """Restrict anyio tests to asyncio only (trio is not installed)."""
    return request.param


@pytest.fixture
def hydrolix_settings() -> HydrolixSettings:
    return HydrolixSettings(
        instance_url="https://hdx.example.com/",
        username="exporter",
        password="hunter2",
        project_name="harper",
        logs_table_name="logs",
        analytics_table_name="analytics",
    )


@pytest.fixture
def logger() -> ExporterLogger:
    return ExporterLogger("test-job", min_level="debug")


@pytest.fixture
def hydrolix_http() -> DummyHydrolixHTTP:
    return DummyHydrolixHTTP()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def timer(clock: FakeClock) -> FakeTimer:
    return FakeTimer(clock)
