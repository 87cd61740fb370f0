from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Type, TypeVar

from ..constants import CREATED_AT, ID_FIELD, UPDATED_AT

T = TypeVar("T")

_MISSING = object()


class Record(Dict[str, Any]):
    """A stored document: a plain field mapping with typed accessors for system fields."""

    @property
    def id(self) -> str:
        return self[ID_FIELD]

    @property
    def created_at(self) -> datetime:
        return self[CREATED_AT]

    @property
    def updated_at(self) -> datetime:
        return self[UPDATED_AT]

    def typed(self, field: str, type_: Type[T], default: Any = _MISSING) -> T:
        """Return ``self[field]`` checked against ``type_``.

        Raises KeyError when the field is absent and no default was given, and
        TypeError when the stored value has a different type.
        """
        if field not in self:
            if default is _MISSING:
                raise KeyError(field)
            return default
        value = self[field]
        if not isinstance(value, type_) or (type_ in (int, float) and isinstance(value, bool)):
            raise TypeError(f"field '{field}' is {type(value).__name__}, expected {type_.__name__}")
        return value


class IdGenerator:
    """Strictly increasing decimal identifiers derived from time.time_ns().

    Two calls within the same clock tick still get distinct identifiers, and
    an identifier is never handed out twice by the same generator.
    """

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            now = time.time_ns()
            self._last = now if now > self._last else self._last + 1
            return str(self._last)


class Clock:
    """UTC wall clock that never returns the same instant twice."""

    _STEP = timedelta(microseconds=1)

    def __init__(self):
        self._last: Optional[datetime] = None
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            now = datetime.now(timezone.utc)
            if self._last is not None and now <= self._last:
                now = self._last + self._STEP
            self._last = now
            return now


__all__ = ["Record", "IdGenerator", "Clock"]
