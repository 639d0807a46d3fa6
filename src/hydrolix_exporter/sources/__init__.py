"""Telemetry and configuration sources."""

from .base import ConfigStore, TelemetrySource
from .harper import HarperConfigStore, HarperOperations, HarperTelemetrySource

__all__ = [
    "ConfigStore",
    "HarperConfigStore",
    "HarperOperations",
    "HarperTelemetrySource",
    "TelemetrySource",
]
