"""Offline-capable Python client for the Sofia API."""

from .api_client import (
    QUEUED_STATUS,
    ApiError,
    AuthenticationRequired,
    NetworkUnavailable,
    SofiaClient,
    SofiaClientError,
)
from .offline_queue import OfflineQueue

__all__ = [
    "QUEUED_STATUS",
    "ApiError",
    "AuthenticationRequired",
    "NetworkUnavailable",
    "OfflineQueue",
    "SofiaClient",
    "SofiaClientError",
]
