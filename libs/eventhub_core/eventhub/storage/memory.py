"""
In-Memory Document Store

Volatile stand-in for Firestore used in development and whenever the real
database cannot be reached. Collections are ordered lists of records; every
read re-scans the owning list, there are no secondary indexes.
"""

from __future__ import annotations

import copy
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..constants import CREATED_AT, ID_FIELD, KNOWN_COLLECTIONS, SYSTEM_FIELDS, UPDATED_AT
from ..errors import InvalidCollectionError
from .query import compile_filter
from .records import Clock, IdGenerator, Record


def check_collection(name: Any) -> str:
    if not isinstance(name, str) or not name:
        raise InvalidCollectionError(name)
    return name


def check_data(data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise TypeError(f"record data must be a mapping, got {type(data).__name__}")
    return data


def _detached(item: Record) -> Record:
    # Nested values are copied too; callers never hold a reference into the store
    return Record(copy.deepcopy(dict(item)))


class DocumentStore:
    """In-memory document store.

    All operations are coroutines for parity with the Firestore adapter but
    never suspend: each one reads and mutates the collection in a single step
    under a store-wide lock, so concurrent callers see whole operations only.
    """

    def __init__(self, collections: Iterable[str] = KNOWN_COLLECTIONS):
        self._data: Dict[str, List[Record]] = {check_collection(c): [] for c in collections}
        self._lock = threading.RLock()
        self._ids = IdGenerator()
        self._clock = Clock()

    def _items(self, collection: str) -> List[Record]:
        return self._data.get(check_collection(collection), [])

    def _index_of(self, items: List[Record], document_id: Any) -> int:
        for i, item in enumerate(items):
            if item[ID_FIELD] == document_id:
                return i
        return -1

    def collections(self) -> List[str]:
        with self._lock:
            return list(self._data)

    async def get_all(self, collection: str) -> List[Record]:
        """Return every record in insertion order (empty if never written)."""
        with self._lock:
            return [_detached(item) for item in self._items(collection)]

    async def find_by_id(self, collection: str, document_id: str) -> Optional[Record]:
        with self._lock:
            items = self._items(collection)
            i = self._index_of(items, document_id)
            return _detached(items[i]) if i >= 0 else None

    async def find(self, collection: str, filter: Optional[Mapping[str, Any]] = None) -> List[Record]:
        """Return records matching ``filter`` in insertion order."""
        predicate = compile_filter(filter)
        with self._lock:
            return [_detached(item) for item in self._items(collection) if predicate(item)]

    async def create(self, collection: str, data: Mapping[str, Any]) -> Record:
        """Store a new record with a fresh ``_id`` and both timestamps set to now.

        System fields present in ``data`` are ignored.
        """
        check_collection(collection)
        fields = copy.deepcopy({k: v for k, v in check_data(data).items() if k not in SYSTEM_FIELDS})
        with self._lock:
            now = self._clock.now()
            item = Record({ID_FIELD: self._ids(), **fields, CREATED_AT: now, UPDATED_AT: now})
            self._data.setdefault(collection, []).append(item)
            return _detached(item)

    async def update(self, collection: str, document_id: str, data: Mapping[str, Any]) -> Optional[Record]:
        """Shallow-merge ``data`` into the record: new values win, omitted fields are kept.

        ``_id`` and ``created_at`` never change; ``updated_at`` is refreshed.
        Returns the updated record, or None if ``document_id`` is unknown.
        """
        fields = copy.deepcopy({k: v for k, v in check_data(data).items() if k not in SYSTEM_FIELDS})
        with self._lock:
            items = self._items(collection)
            i = self._index_of(items, document_id)
            if i < 0:
                return None
            items[i] = Record({**items[i], **fields, UPDATED_AT: self._clock.now()})
            return _detached(items[i])

    async def delete(self, collection: str, document_id: str) -> Optional[Record]:
        """Remove the record and return it, or None if ``document_id`` is unknown."""
        with self._lock:
            items = self._items(collection)
            i = self._index_of(items, document_id)
            if i < 0:
                return None
            return items.pop(i)

    def clear(self, collection: Optional[str] = None) -> None:
        """Empty one collection, or every collection when ``collection`` is None."""
        with self._lock:
            if collection is None:
                for items in self._data.values():
                    items.clear()
            else:
                self._data[check_collection(collection)] = []


__all__ = ["DocumentStore", "check_collection", "check_data"]
