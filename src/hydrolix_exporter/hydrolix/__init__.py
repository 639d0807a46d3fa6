"""Hydrolix API client."""

from .client import HydrolixClient
from .session import SessionManager
from .transforms import analytics_transform, logs_transform

__all__ = [
    "HydrolixClient",
    "SessionManager",
    "analytics_transform",
    "logs_transform",
]
