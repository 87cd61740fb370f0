"""
EventHub Firestore adapter - the production document database.

Exposes the same six primitives as DocumentStore so the compatibility shim
can sit on either backend. Literal equality clauses are pushed down to
Firestore; the compiled filter is always re-applied to the streamed
documents so results match the in-memory store exactly, including the
operators Firestore has no native form for ($contains, $or over
substrings, $ne with missing fields).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..config import Settings
from ..constants import CREATED_AT, EVENTS, ID_FIELD, SYSTEM_FIELDS, UPDATED_AT
from .memory import check_collection, check_data
from .query import OR, compile_filter
from .records import Clock, IdGenerator, Record

_log = logging.getLogger(__name__)


def pushdown_clauses(filter: Optional[Mapping[str, Any]]) -> List[Tuple[str, str, Any]]:
    """Top-level literal equality clauses Firestore can evaluate server-side."""
    clauses: List[Tuple[str, str, Any]] = []
    for field, condition in (filter or {}).items():
        if field == OR or field == ID_FIELD or "." in field:
            continue
        if condition is None or isinstance(condition, (Mapping, list, tuple)):
            continue
        clauses.append((field, "==", condition))
    return clauses


class FirestoreStore:
    """Document store backed by a google.cloud.firestore.Client."""

    def __init__(self, client: Any, namespace: Optional[str] = None):
        self.client = client
        self.namespace = namespace
        self._ids = IdGenerator()
        self._clock = Clock()

    def _col(self, collection: str):
        name = check_collection(collection)
        return self.client.collection(f"{name}_{self.namespace}" if self.namespace else name)

    @staticmethod
    def _to_record(snap: Any) -> Record:
        data = snap.to_dict() or {}
        data.setdefault(ID_FIELD, snap.id)
        return Record(data)

    async def get_all(self, collection: str) -> List[Record]:
        # Document ids come from IdGenerator, so id order is insertion order
        return [self._to_record(snap) for snap in self._col(collection).stream()]

    async def find_by_id(self, collection: str, document_id: str) -> Optional[Record]:
        snap = self._col(collection).document(str(document_id)).get()
        if not snap.exists:
            return None
        return self._to_record(snap)

    async def find(self, collection: str, filter: Optional[Mapping[str, Any]] = None) -> List[Record]:
        from google.cloud.firestore_v1.base_query import FieldFilter  # type: ignore

        predicate = compile_filter(filter)
        query = self._col(collection)
        for field, op, value in pushdown_clauses(filter):
            query = query.where(filter=FieldFilter(field, op, value))
        out = []
        for snap in query.stream():
            record = self._to_record(snap)
            if predicate(record):
                out.append(record)
        return out

    async def create(self, collection: str, data: Mapping[str, Any]) -> Record:
        fields = {k: v for k, v in check_data(data).items() if k not in SYSTEM_FIELDS}
        doc_id = self._ids()
        now = self._clock.now()
        stored = {ID_FIELD: doc_id, **fields, CREATED_AT: now, UPDATED_AT: now}
        self._col(collection).document(doc_id).create(stored)
        return Record(stored)

    async def update(self, collection: str, document_id: str, data: Mapping[str, Any]) -> Optional[Record]:
        fields = {k: v for k, v in check_data(data).items() if k not in SYSTEM_FIELDS}
        ref = self._col(collection).document(str(document_id))
        snap = ref.get()
        if not snap.exists:
            return None
        merged: Dict[str, Any] = {**self._to_record(snap), **fields, UPDATED_AT: self._clock.now()}
        ref.set(merged)
        return Record(merged)

    async def delete(self, collection: str, document_id: str) -> Optional[Record]:
        ref = self._col(collection).document(str(document_id))
        snap = ref.get()
        if not snap.exists:
            return None
        ref.delete()
        return self._to_record(snap)


async def connect_firestore(settings: Settings) -> FirestoreStore:
    """Open a Firestore client and prove it is reachable with a one-row read.

    Raises whatever the client raises; the backend selector owns recovery.
    """
    try:
        from google.cloud import firestore  # type: ignore
    except Exception as e:  # pragma: no cover - depends on installed extras
        raise RuntimeError("google-cloud-firestore is not installed") from e

    client = firestore.Client(project=settings.firestore_project, database=settings.firestore_database)
    store = FirestoreStore(client, namespace=settings.namespace)
    list(store._col(EVENTS).limit(1).stream(timeout=settings.connect_timeout_s))
    _log.info("Firestore connected (project=%s, database=%s)", client.project, settings.firestore_database)
    return store


__all__ = ["FirestoreStore", "connect_firestore", "pushdown_clauses"]
