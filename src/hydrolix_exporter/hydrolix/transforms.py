"""Transform templates created when a table has no matching transform yet."""

from __future__ import annotations

from typing import Any, Dict, List

_PRIMARY_TIMESTAMP: Dict[str, Any] = {
    "name": "timestamp",
    "datatype": {
        "type": "epoch",
        "primary": True,
        "format": "ms",
        "resolution": "ms",
    },
}


def _column(name: str, datatype: str, index: bool = True) -> Dict[str, Any]:
    return {"name": name, "datatype": {"type": datatype, "index": index}}


def _transform(name: str, description: str, columns: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "name": name,
        "description": description,
        "type": "json",
        "settings": {
            "is_default": False,
            "compression": "none",
            "format_details": {"flattening": {"active": False}},
            "output_columns": [_PRIMARY_TIMESTAMP, *columns],
        },
    }


def logs_transform(name: str) -> Dict[str, Any]:
    """Transform for LogRecord.to_event documents."""
    return _transform(
        name,
        "HarperDB log records",
        [
            _column("thread", "string"),
            _column("level", "string"),
            {
                "name": "tags",
                "datatype": {"type": "array", "elements": [{"type": "string", "index": True}]},
            },
            _column("message", "string", index=False),
        ],
    )


def analytics_transform(name: str) -> Dict[str, Any]:
    """Transform for MetricsSnapshot.to_event documents."""
    return _transform(
        name,
        "HarperDB system metrics",
        [
            _column("memory_free", "double", index=False),
            _column("memory_used", "double", index=False),
            _column("cpu_avg_load", "double", index=False),
            _column("cpu_current_load", "double", index=False),
            _column("cpu_current_load_user", "double", index=False),
            _column("cpu_current_load_system", "double", index=False),
        ],
    )
