from __future__ import annotations

import json
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator

_LEVELS = {"debug": 10, "info": 20, "warning": 30, "error": 40}


class ExporterLogger:
    """Structured JSON logger, one object per line on stderr."""

    def __init__(self, job_id: str, min_level: str = "info"):
        self.job_id = job_id
        self.min_level = min_level

    def debug(self, message: str, **kwargs: Any) -> None:
        self._emit("debug", message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._emit("info", message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._emit("warning", message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._emit("error", message, **kwargs)

    @contextmanager
    def stage(self, name: str, **fields: Any) -> Iterator[None]:
        """Context manager that tracks stage timing."""
        start = datetime.now(timezone.utc)
        self.debug("stage_start", stage=name, **fields)
        status = "ok"
        try:
            yield
        except Exception as exc:
            status = "error"
            self.error("stage_error", stage=name, error=str(exc), **fields)
            raise
        finally:
            end = datetime.now(timezone.utc)
            duration_ms = int((end - start).total_seconds() * 1000)
            self.info("stage_end", stage=name, duration_ms=duration_ms, status=status, **fields)

    def is_enabled(self, level: str) -> bool:
        return _LEVELS.get(level, 0) >= _LEVELS.get(self.min_level, 20)

    def _emit(self, level: str, message: str, **kwargs: Any) -> None:
        if not self.is_enabled(level):
            return

        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "job_id": self.job_id,
            "message": message,
        }
        payload.update(self._sanitize(kwargs))

        sys.stderr.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")
        sys.stderr.flush()

    @staticmethod
    def _sanitize(fields: Dict[str, Any]) -> Dict[str, Any]:
        redacted: Dict[str, Any] = {}
        for key, value in fields.items():
            if ExporterLogger._is_sensitive_key(key):
                redacted[key] = "***"
            else:
                redacted[key] = value
        return redacted

    @staticmethod
    def _is_sensitive_key(key: str) -> bool:
        lowered = key.lower()
        return any(token in lowered for token in ("token", "secret", "password", "api_key", "apikey"))
