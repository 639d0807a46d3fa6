from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, SecretStr, confloat, conint, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    CONFIG_REFRESH_SECONDS,
    DEFAULT_ANALYTICS_TRANSFORM,
    DEFAULT_LOGS_TRANSFORM,
    DEFAULT_POLL_INTERVAL_SECONDS,
    MAX_POLL_INTERVAL_SECONDS,
    MIN_POLL_INTERVAL_SECONDS,
    LogLevel,
)
from .models import SinkTarget


class ExportConfiguration(BaseModel):
    """Live export settings, re-read from the config store while the job runs."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    log_level: LogLevel = Field(default=LogLevel.ALL, alias="logLevel")
    include_system_info: bool = Field(default=True, alias="includeSystemInfo")
    poll_interval_seconds: conint(ge=MIN_POLL_INTERVAL_SECONDS, le=MAX_POLL_INTERVAL_SECONDS) = Field(
        default=DEFAULT_POLL_INTERVAL_SECONDS,
        alias="pollInterval",
        description="Seconds between poll cycles",
    )
    log_sample_fraction: confloat(ge=0.0, le=1.0) = Field(
        default=1.0,
        alias="logIngestPercentage",
        description="Fraction of log records forwarded to Hydrolix",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    def to_record(self) -> Dict[str, Any]:
        """Stored representation, keyed the way the config table names its columns."""
        return self.model_dump(by_alias=True, mode="json")


DEFAULT_EXPORT_CONFIG = ExportConfiguration()


class HydrolixSettings(BaseSettings):
    """Hydrolix connection settings loaded from HYDROLIX_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="HYDROLIX_", frozen=True, extra="ignore")

    instance_url: str = Field(description="Base URL of the Hydrolix cluster")
    username: str
    password: SecretStr
    project_name: str
    logs_table_name: str
    logs_transform_name: str = Field(default=DEFAULT_LOGS_TRANSFORM)
    analytics_table_name: str
    analytics_transform_name: str = Field(default=DEFAULT_ANALYTICS_TRANSFORM)
    http_timeout_seconds: confloat(gt=0) = Field(default=30.0)

    @field_validator("instance_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

    def sink_target(self) -> SinkTarget:
        return SinkTarget(
            project=self.project_name,
            logs_table=self.logs_table_name,
            logs_transform_name=self.logs_transform_name,
            analytics_table=self.analytics_table_name,
            analytics_transform_name=self.analytics_transform_name,
        )


class HarperSettings(BaseSettings):
    """HarperDB operations API settings loaded from HARPER_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="HARPER_", frozen=True, extra="ignore")

    operations_url: str = Field(default="http://localhost:9925")
    username: str = Field(default="")
    password: SecretStr = Field(default="")
    config_database: str = Field(default="HydrolixExporter")
    config_table: str = Field(default="HydrolixExporterConfiguration")
    http_timeout_seconds: confloat(gt=0) = Field(default=30.0)


class ExporterSettings(BaseSettings):
    """Process-level settings loaded from EXPORTER_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="EXPORTER_", frozen=True, extra="ignore")

    log_level: str = Field(default="info", description="Minimum level for the exporter's own logs")
    config_refresh_seconds: confloat(gt=0) = Field(default=CONFIG_REFRESH_SECONDS)

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_lowercase(cls, value: str) -> str:
        if isinstance(value, str):
            return value.strip().lower()
        return value
