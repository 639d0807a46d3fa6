from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass(frozen=True)
class LogRecord:
    timestamp: datetime
    thread: str
    level: str
    tags: Tuple[str, ...]
    message: str

    def to_event(self) -> Dict[str, Any]:
        """Ingest document; the logs transform reads epoch milliseconds."""
        return {
            "timestamp": _epoch_ms(self.timestamp),
            "thread": self.thread,
            "level": self.level,
            "tags": list(self.tags),
            "message": self.message,
        }


@dataclass(frozen=True)
class MetricsSnapshot:
    memory_free: float
    memory_used: float
    cpu_avg_load: float
    cpu_current_load: float
    cpu_current_load_user: float
    cpu_current_load_system: float
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_event(self) -> Dict[str, Any]:
        return {
            "timestamp": _epoch_ms(self.timestamp),
            "memory_free": self.memory_free,
            "memory_used": self.memory_used,
            "cpu_avg_load": self.cpu_avg_load,
            "cpu_current_load": self.cpu_current_load,
            "cpu_current_load_user": self.cpu_current_load_user,
            "cpu_current_load_system": self.cpu_current_load_system,
        }


@dataclass(frozen=True)
class HydrolixObject:
    uuid: str
    name: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HydrolixObject":
        return cls(uuid=str(data.get("uuid", "")), name=str(data.get("name", "")))


@dataclass(frozen=True)
class SinkSession:
    access_token: str
    organization_id: str
    expires_implicitly: bool = True


@dataclass(frozen=True)
class SinkTarget:
    project: str
    logs_table: str
    logs_transform_name: str
    analytics_table: str
    analytics_transform_name: str

    def logs_headers(self) -> Dict[str, str]:
        return {
            "x-hdx-table": f"{self.project}.{self.logs_table}",
            "x-hdx-transform": self.logs_transform_name,
        }

    def analytics_headers(self) -> Dict[str, str]:
        return {
            "x-hdx-table": f"{self.project}.{self.analytics_table}",
            "x-hdx-transform": self.analytics_transform_name,
        }


@dataclass(frozen=True)
class LoginSuccess:
    access_token: str
    orgs: List[HydrolixObject]


@dataclass(frozen=True)
class LoginFailure:
    detail: Optional[str] = None


LoginResult = Union[LoginSuccess, LoginFailure]


def decode_login_response(status_code: int, body: Any) -> LoginResult:
    """Decode a login response body into a tagged result."""
    if not isinstance(body, dict):
        return LoginFailure(detail=body if isinstance(body, str) and body else None)

    token = (body.get("auth_token") or {}).get("access_token")
    if 200 <= status_code < 300 and token:
        orgs = [HydrolixObject.from_dict(org) for org in body.get("orgs") or []]
        return LoginSuccess(access_token=str(token), orgs=orgs)

    detail = body.get("detail")
    return LoginFailure(detail=str(detail) if detail else None)


class SessionState(str, Enum):
    LOGGED_OUT = "logged_out"
    LOGGING_IN = "logging_in"
    LOGGED_IN = "logged_in"


class JobState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    STOPPED = "stopped"


def _epoch_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)
