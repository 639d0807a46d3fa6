from __future__ import annotations

from typing import Any, Optional

from .constants import ExitCode


class ExporterError(Exception):
    """Base exception for all exporter errors."""

    exit_code: ExitCode = ExitCode.ERROR
    status_code: int = 500


class ConfigError(ExporterError):
    """Process settings are missing or invalid."""

    exit_code = ExitCode.STARTUP_FAILED


class BadRequestError(ExporterError):
    """Configuration update rejected."""

    status_code = 400

    def __init__(self, message: str = "Request input not allowed") -> None:
        super().__init__(message)


class HydrolixError(ExporterError):
    """Base exception for failures talking to Hydrolix."""


class AuthenticationError(HydrolixError):
    """Hydrolix rejected the login."""

    exit_code = ExitCode.STARTUP_FAILED
    status_code = 401

    def __init__(self, message: str = "Could not log in") -> None:
        super().__init__(message)


class ResourceNotFound(HydrolixError):
    """A project or table the exporter writes to does not exist."""

    exit_code = ExitCode.STARTUP_FAILED
    status_code = 404

    def __init__(self, resource: str, name: str) -> None:
        super().__init__(f"Hydrolix {resource} {name} not found")
        self.resource = resource
        self.name = name


class IngestError(HydrolixError):
    """Hydrolix answered with a non-2xx status."""

    def __init__(
        self,
        status_code: int,
        method: str,
        path: str,
        body: Optional[Any] = None,
    ) -> None:
        super().__init__(f"Hydrolix request failed: {method} {path} -> {status_code} {body}")
        self.status_code = status_code
        self.method = method
        self.path = path
        self.body = body


class TransportError(HydrolixError):
    """Network-level failure before Hydrolix produced a response."""

    status_code = 503


class HarperError(ExporterError):
    """HarperDB operations API call failed."""

    def __init__(self, operation: str, message: str, status_code: int = 500) -> None:
        super().__init__(f"HarperDB {operation} failed: {message}")
        self.operation = operation
        self.status_code = status_code
