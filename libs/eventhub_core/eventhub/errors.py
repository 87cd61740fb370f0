"""
EventHub storage errors.

Absence is never an error here: store lookups return ``None`` when an
identifier is unknown. Exceptions are reserved for programmer mistakes
(bad filter shapes, bad collection names, bad pagination) and for reading
the backend flag before the selector has run.
"""

from __future__ import annotations


class EventHubError(Exception):
    """Base class for all EventHub errors."""


class StorageError(EventHubError):
    pass


class UnsupportedOperatorError(StorageError, ValueError):
    """A filter used an operator or shape the query matcher does not implement."""

    def __init__(self, operator: str, field: str | None = None, hint: str | None = None):
        self.operator = operator
        self.field = field
        where = f" on field '{field}'" if field else ""
        suffix = f"; {hint}" if hint else ""
        super().__init__(f"unsupported query operator '{operator}'{where}{suffix}")


class InvalidQueryError(StorageError, ValueError):
    """Malformed filter, sort or pagination input from the caller."""


class InvalidCollectionError(StorageError, TypeError):
    def __init__(self, name: object):
        self.name = name
        super().__init__(f"collection name must be a non-empty str, got {name!r}")


class BackendNotSelectedError(EventHubError, RuntimeError):
    """The backend flag was read before connect_backend() completed."""


__all__ = [
    "EventHubError",
    "StorageError",
    "UnsupportedOperatorError",
    "InvalidQueryError",
    "InvalidCollectionError",
    "BackendNotSelectedError",
]
