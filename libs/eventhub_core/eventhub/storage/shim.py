"""
Compatibility shim: one model API over either storage backend.

Business code asks the active Database for a Model and uses the familiar
document-database call shape:

    events = db.model("events")
    page = await (
        events.find({"status": "approved"})
        .sort("date", "asc")
        .skip(0)
        .limit(10)
        .populate("organizer", "users", fields=("name",))
    )
    total = await events.count({"status": "approved"})

Filters go through resolve_filter() first, then the store's find, then the
result pipeline. Which backend serves the call is decided by the
Database.using_in_memory flag set once by the backend selector; nothing here
inspects the objects a backend returns to guess where they came from.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Generator, List, Mapping, Optional, Protocol, Sequence, Tuple

from ..constants import ID_FIELD
from ..errors import InvalidQueryError, UnsupportedOperatorError
from .memory import DocumentStore, check_collection, check_data
from .pipeline import Direction, enrich, is_descending, paginate, sort_records
from .query import compile_filter, resolve_filter
from .records import Record


class Store(Protocol):
    async def get_all(self, collection: str) -> List[Record]: ...

    async def find_by_id(self, collection: str, document_id: str) -> Optional[Record]: ...

    async def find(self, collection: str, filter: Optional[Mapping[str, Any]] = None) -> List[Record]: ...

    async def create(self, collection: str, data: Mapping[str, Any]) -> Record: ...

    async def update(self, collection: str, document_id: str, data: Mapping[str, Any]) -> Optional[Record]: ...

    async def delete(self, collection: str, document_id: str) -> Optional[Record]: ...


@dataclass(frozen=True)
class _Populate:
    field: str
    collection: str
    fields: Tuple[str, ...]
    placeholder: Optional[Mapping[str, Any]]


def _check_count(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidQueryError(f"{name} must be a non-negative integer, got {value!r}")
    return value


class Query:
    """Chainable, awaitable find."""

    def __init__(self, model: "Model", filter: Optional[Mapping[str, Any]] = None):
        self.model = model
        self.filter = resolve_filter(filter)
        self._sort: Optional[Tuple[str, Direction]] = None
        self._skip: Optional[int] = None
        self._limit: Optional[int] = None
        self._populate: List[_Populate] = []

    def sort(self, field: Any, direction: Direction = "asc") -> "Query":
        """Sort by ``field``; also accepts a one-key mapping such as ``{"date": -1}``."""
        if isinstance(field, Mapping):
            if len(field) != 1:
                raise InvalidQueryError("sort accepts exactly one field")
            field, direction = next(iter(field.items()))
        is_descending(direction)
        self._sort = (field, direction)
        return self

    def skip(self, n: int) -> "Query":
        self._skip = _check_count("skip", n)
        return self

    def limit(self, n: int) -> "Query":
        self._limit = _check_count("limit", n)
        return self

    def populate(
        self,
        field: str,
        collection: str,
        fields: Sequence[str] = ("name",),
        placeholder: Optional[Mapping[str, Any]] = None,
    ) -> "Query":
        check_collection(collection)
        self._populate.append(_Populate(field, collection, tuple(fields), placeholder))
        return self

    async def _fetch(self) -> List[Record]:
        return await self.model.store.find(self.model.collection, self.filter)

    async def _finish(self, records: List[Record]) -> List[Record]:
        for p in self._populate:
            refs = await self.model._references(p.collection, (r.get(p.field) for r in records))
            records = enrich(
                records,
                p.field,
                lambda raw: refs.get(raw) if isinstance(raw, str) else None,
                p.fields,
                p.placeholder,
            )
        return records

    async def exec(self) -> List[Record]:
        records = await self._fetch()
        if self._sort is not None:
            records = sort_records(records, *self._sort)
        if self._skip is not None or self._limit is not None:
            records = paginate(records, self._skip, self._limit)
        return await self._finish(records)

    def __await__(self) -> Generator[Any, None, Any]:
        return self.exec().__await__()


class OneQuery(Query):
    """find_by_id(): resolves to a single record or None."""

    def __init__(self, model: "Model", document_id: str):
        if not isinstance(document_id, str):
            raise InvalidQueryError(f"{ID_FIELD} must be a string, got {document_id!r}")
        super().__init__(model, None)
        self.document_id = document_id

    def sort(self, field: Any, direction: Direction = "asc") -> "Query":
        raise InvalidQueryError("find_by_id resolves to one record; sort does not apply")

    def skip(self, n: int) -> "Query":
        raise InvalidQueryError("find_by_id resolves to one record; skip does not apply")

    def limit(self, n: int) -> "Query":
        raise InvalidQueryError("find_by_id resolves to one record; limit does not apply")

    async def exec(self) -> Optional[Record]:  # type: ignore[override]
        record = await self.model.store.find_by_id(self.model.collection, self.document_id)
        if record is None:
            return None
        return (await self._finish([record]))[0]


class Model:
    def __init__(self, store: Store, collection: str):
        self.store = store
        self.collection = check_collection(collection)

    def __repr__(self):
        return f"<Model {self.collection} on {type(self.store).__name__}>"

    async def create(self, data: Mapping[str, Any]) -> Record:
        return await self.store.create(self.collection, check_data(data))

    def find(self, filter: Optional[Mapping[str, Any]] = None) -> Query:
        return Query(self, filter)

    def find_by_id(self, document_id: str) -> OneQuery:
        return OneQuery(self, document_id)

    async def count(self, filter: Optional[Mapping[str, Any]] = None) -> int:
        return len(await self.store.find(self.collection, resolve_filter(filter)))

    async def _owned(self, filter: Mapping[str, Any]) -> Optional[Record]:
        """Fetch by the filter's ``_id`` and check the remaining keys against it."""
        resolved = resolve_filter(filter)
        document_id = resolved.pop(ID_FIELD, None)
        if not isinstance(document_id, str):
            raise InvalidQueryError(f"filter must carry a string {ID_FIELD}, got {document_id!r}")
        record = await self.store.find_by_id(self.collection, document_id)
        if record is None or not compile_filter(resolved)(record):
            return None
        return record

    async def find_one_and_update(self, filter: Mapping[str, Any], update: Mapping[str, Any]) -> Optional[Record]:
        """Shallow-merge ``update`` into the record matching ``filter``; None if nothing matched."""
        for key in check_data(update):
            if isinstance(key, str) and key.startswith("$"):
                raise UnsupportedOperatorError(key)
        record = await self._owned(filter)
        if record is None:
            return None
        return await self.store.update(self.collection, record.id, update)

    async def find_one_and_delete(self, filter: Mapping[str, Any]) -> Optional[Record]:
        record = await self._owned(filter)
        if record is None:
            return None
        return await self.store.delete(self.collection, record.id)

    async def _references(self, collection: str, raws: Any) -> Dict[str, Record]:
        refs: Dict[str, Record] = {}
        seen = set()
        for raw in raws:
            if isinstance(raw, str) and raw not in seen:
                seen.add(raw)
                ref = await self.store.find_by_id(collection, raw)
                if ref is not None:
                    refs[raw] = ref
        return refs


@dataclass(frozen=True)
class Database:
    """The backend chosen at startup. Immutable for the life of the process."""

    store: Store
    using_in_memory: bool
    scratch: Optional[DocumentStore] = None

    @property
    def backend(self) -> str:
        return "memory" if self.using_in_memory else "firestore"

    def model(self, collection: str) -> Model:
        return Model(self.store, collection)


__all__ = ["Store", "Query", "OneQuery", "Model", "Database"]
