from __future__ import annotations

from enum import Enum


class LogLevel(str, Enum):
    """Log levels accepted by the exporter configuration."""

    ALL = "all"
    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    NOTIFY = "notify"
    WARN = "warn"
    ERROR = "error"


class ExitCode(int, Enum):
    """Process exit codes."""

    SUCCESS = 0
    ERROR = 1
    STARTUP_FAILED = 2


class HydrolixRoutes:
    """Hydrolix API paths."""

    LOGIN = "/config/v1/login/"
    INGEST = "/ingest/event"

    @staticmethod
    def projects(org_id: str) -> str:
        return f"/config/v1/orgs/{org_id}/projects/"

    @staticmethod
    def tables(org_id: str, project_id: str) -> str:
        return f"/config/v1/orgs/{org_id}/projects/{project_id}/tables/"

    @staticmethod
    def transforms(org_id: str, project_id: str, table_id: str) -> str:
        return f"/config/v1/orgs/{org_id}/projects/{project_id}/tables/{table_id}/transforms/"


CONFIG_REFRESH_SECONDS = 60
EXPORTER_CONFIG_KEY = "hydrolix"

DEFAULT_POLL_INTERVAL_SECONDS = 60
MIN_POLL_INTERVAL_SECONDS = 1
MAX_POLL_INTERVAL_SECONDS = 3600

DEFAULT_LOGS_TRANSFORM = "hdb_logs_transform"
DEFAULT_ANALYTICS_TRANSFORM = "hdb_analytics_transform"

READ_LOGS_PAGE_SIZE = 1000
