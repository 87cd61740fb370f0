from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from ..constants import ID_FIELD
from ..errors import InvalidQueryError
from .query import MISSING, lookup

Direction = Union[str, int]

_ASC = ("asc", "ascending", 1)
_DESC = ("desc", "descending", -1)


def is_descending(direction: Direction) -> bool:
    """Map a sort direction ("asc"/"desc"/1/-1) to a reverse flag."""
    if isinstance(direction, str):
        direction = direction.strip().lower()
    if direction in _ASC and not isinstance(direction, bool):
        return False
    if direction in _DESC and not isinstance(direction, bool):
        return True
    raise InvalidQueryError(f"sort direction must be asc/desc or 1/-1, got {direction!r}")


def _sort_key(field: str) -> Callable[[Mapping[str, Any]], tuple]:
    def key(record: Mapping[str, Any]) -> tuple:
        value = lookup(record, field)
        if value is MISSING or value is None:
            return (0,)
        if isinstance(value, datetime) and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return (1, value)

    return key


def sort_records(records: Sequence[Mapping[str, Any]], field: str, direction: Direction = "asc") -> List[Any]:
    """Stable sort by ``field``; records with equal keys keep their input order.

    Missing and null values sort before everything else when ascending.
    """
    if not isinstance(field, str) or not field:
        raise InvalidQueryError(f"sort field must be a non-empty string, got {field!r}")
    reverse = is_descending(direction)
    try:
        return sorted(records, key=_sort_key(field), reverse=reverse)
    except TypeError as e:
        raise InvalidQueryError(f"cannot sort on '{field}': values of mixed types ({e})") from e


def _check_count(name: str, value: Optional[int]) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidQueryError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise InvalidQueryError(f"{name} must be >= 0, got {value}")


def paginate(records: Sequence[Any], skip: Optional[int] = None, limit: Optional[int] = None) -> List[Any]:
    """Return ``records[skip:skip + limit]``; out-of-range windows give an empty list."""
    _check_count("skip", skip)
    _check_count("limit", limit)
    start = skip or 0
    stop = None if limit is None else start + limit
    return list(records[start:stop])


def unresolved_reference(raw: Any, fields: Sequence[str], placeholder: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    out: Dict[str, Any] = {ID_FIELD: raw}
    out.update({f: None for f in fields})
    if placeholder:
        out.update(placeholder)
    return out


def enrich(
    records: Sequence[Mapping[str, Any]],
    field: str,
    lookup_ref: Callable[[Any], Optional[Mapping[str, Any]]],
    fields: Sequence[str] = ("name",),
    placeholder: Optional[Mapping[str, Any]] = None,
) -> List[Dict[str, Any]]:
    """
    Replace ``record[field]`` (a foreign id) with ``{"_id": ..., <fields>}``
    taken from the referenced record. References that cannot be resolved get
    ``{"_id": raw, <fields>: None}`` overlaid with ``placeholder``.
    Records without the field are returned unchanged.
    """
    out: List[Dict[str, Any]] = []
    for record in records:
        enriched = dict(record)
        if field in record:
            raw = record[field]
            ref = lookup_ref(raw) if raw is not None else None
            if ref is None:
                enriched[field] = unresolved_reference(raw, fields, placeholder)
            else:
                enriched[field] = {ID_FIELD: ref.get(ID_FIELD, raw), **{f: ref.get(f) for f in fields}}
        out.append(type(record)(enriched) if isinstance(record, dict) else enriched)
    return out


__all__ = ["Direction", "is_descending", "sort_records", "paginate", "unresolved_reference", "enrich"]
