"""
EventHub core: persistence for the event-management service.

Two interchangeable backends sit behind one call surface: Google Cloud
Firestore in production and an in-memory document store used in development
or when Firestore cannot be reached.
"""

from .config import Settings, configure_logging
from .errors import (
    BackendNotSelectedError,
    EventHubError,
    InvalidCollectionError,
    InvalidQueryError,
    StorageError,
    UnsupportedOperatorError,
)

__all__ = [
    "Settings",
    "configure_logging",
    "EventHubError",
    "StorageError",
    "UnsupportedOperatorError",
    "InvalidQueryError",
    "InvalidCollectionError",
    "BackendNotSelectedError",
]
