"""
Query matcher for the in-memory document store.

A filter is a mapping of field name to condition, AND-ed across keys:

    {"status": "approved"}                                  equality
    {"date": {"$gte": start, "$lte": end}}                  inclusive range
    {"title": {"$contains": "music", "$ignore_case": True}} substring
    {"status": {"$ne": "cancelled"}}                        inequality
    {"$or": [{"title": ...}, {"description": ...}]}         any sub-filter

Only this operator subset is implemented. Anything else raises
UnsupportedOperatorError when the filter is compiled, before a single record
is scanned, so an unknown operator can never turn into an empty listing.
The same goes for a condition spelled only with operator names missing their
"$" ({"gte": start}); a nested literal needs at least one ordinary key.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..errors import InvalidQueryError, UnsupportedOperatorError

OR = "$or"
GTE = "$gte"
LTE = "$lte"
NE = "$ne"
CONTAINS = "$contains"
IGNORE_CASE = "$ignore_case"

# Caller dialect accepted by resolve_filter() only
REGEX = "$regex"
OPTIONS = "$options"

FIELD_OPERATORS = frozenset({GTE, LTE, NE, CONTAINS, IGNORE_CASE})

Predicate = Callable[[Mapping[str, Any]], bool]

MISSING = object()


def lookup(record: Mapping[str, Any], path: str) -> Any:
    """Return the value at ``path`` (dotted for nested mappings) or MISSING."""
    if path in record:
        return record[path]
    value: Any = record
    for part in path.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return MISSING
        value = value[part]
    return value


def _utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def _bracket(value: Any) -> Optional[str]:
    # Values only compare within the same bracket
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float, Decimal)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, datetime):
        return "datetime"
    if isinstance(value, date):
        return "date"
    return None


def comparable(a: Any, b: Any) -> Optional[Tuple[Any, Any]]:
    """Return (a, b) normalised for ordering, or None if they cannot be ordered."""
    kind = _bracket(a)
    if kind is None or kind != _bracket(b):
        return None
    if kind == "datetime":
        return _utc(a), _utc(b)
    return a, b


def strict_equal(actual: Any, expected: Any) -> bool:
    if expected is None:
        return actual is MISSING or actual is None
    if actual is MISSING:
        return False
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual == expected
    if isinstance(actual, datetime) and isinstance(expected, datetime):
        return _utc(actual) == _utc(expected)
    return actual == expected


def _match_all(record: Mapping[str, Any]) -> bool:
    return True


def _is_operator_expr(value: Any) -> bool:
    return isinstance(value, Mapping) and any(isinstance(k, str) and k.startswith("$") for k in value)


# Operator names written without "$"; as a nested literal they would never match
_BARE_OPERATORS = {
    "gte": GTE,
    "lte": LTE,
    "ne": NE,
    "contains": CONTAINS,
    "ignore_case": IGNORE_CASE,
    "case_insensitive": IGNORE_CASE,
    "caseInsensitive": IGNORE_CASE,
    "or": OR,
    "regex": REGEX,
    "options": OPTIONS,
}


def _reject_bare_operators(field: str, condition: Any) -> None:
    if not isinstance(condition, Mapping) or not condition:
        return
    if all(isinstance(k, str) and k in _BARE_OPERATORS for k in condition):
        op = next(iter(condition))
        raise UnsupportedOperatorError(op, field, hint=f"use '{_BARE_OPERATORS[op]}'")


def _compile_range(field: str, lower: Any, upper: Any) -> Predicate:
    for bound in (lower, upper):
        if bound is not MISSING and _bracket(bound) is None:
            raise InvalidQueryError(f"range bound on '{field}' must be a number, string or date, got {bound!r}")

    def test(record: Mapping[str, Any]) -> bool:
        value = lookup(record, field)
        if value is MISSING or value is None:
            return False
        if lower is not MISSING:
            pair = comparable(value, lower)
            if pair is None or pair[0] < pair[1]:
                return False
        if upper is not MISSING:
            pair = comparable(value, upper)
            if pair is None or pair[0] > pair[1]:
                return False
        return True

    return test


def _compile_contains(field: str, text: Any, ignore_case: Any) -> Predicate:
    if not isinstance(text, str):
        raise InvalidQueryError(f"{CONTAINS} on '{field}' expects a string, got {text!r}")
    if not isinstance(ignore_case, bool):
        raise InvalidQueryError(f"{IGNORE_CASE} on '{field}' expects a bool, got {ignore_case!r}")
    needle = text.casefold() if ignore_case else text

    def test(record: Mapping[str, Any]) -> bool:
        value = lookup(record, field)
        if value is MISSING or value is None:
            return False
        haystack = value if isinstance(value, str) else str(value)
        if ignore_case:
            haystack = haystack.casefold()
        return needle in haystack

    return test


def _compile_operators(field: str, ops: Mapping[str, Any]) -> Predicate:
    for op in ops:
        if not isinstance(op, str) or not op.startswith("$"):
            raise InvalidQueryError(f"cannot mix operators and plain keys in the condition for '{field}'")
        if op not in FIELD_OPERATORS:
            raise UnsupportedOperatorError(op, field)

    tests: List[Predicate] = []
    if GTE in ops or LTE in ops:
        tests.append(_compile_range(field, ops.get(GTE, MISSING), ops.get(LTE, MISSING)))
    if CONTAINS in ops:
        tests.append(_compile_contains(field, ops[CONTAINS], ops.get(IGNORE_CASE, False)))
    elif IGNORE_CASE in ops:
        raise InvalidQueryError(f"{IGNORE_CASE} on '{field}' requires {CONTAINS}")
    if NE in ops:
        unwanted = ops[NE]
        tests.append(lambda record: not strict_equal(lookup(record, field), unwanted))

    return lambda record: all(t(record) for t in tests)


def _compile_or(branches: Any) -> Predicate:
    if not isinstance(branches, (list, tuple)) or not branches:
        raise InvalidQueryError(f"{OR} expects a non-empty list of filters")
    compiled = []
    for branch in branches:
        if not isinstance(branch, Mapping):
            raise InvalidQueryError(f"{OR} branches must be filters, got {branch!r}")
        compiled.append(compile_filter(branch))
    return lambda record: any(p(record) for p in compiled)


def compile_filter(filter: Optional[Mapping[str, Any]]) -> Predicate:
    """Validate ``filter`` and return a predicate over records.

    An absent or empty filter matches everything.
    """
    if filter is None:
        return _match_all
    if not isinstance(filter, Mapping):
        raise InvalidQueryError(f"filter must be a mapping, got {type(filter).__name__}")

    clauses: List[Predicate] = []
    for key, condition in filter.items():
        if not isinstance(key, str) or not key:
            raise InvalidQueryError(f"filter keys must be non-empty strings, got {key!r}")
        if key == OR:
            clauses.append(_compile_or(condition))
        elif key.startswith("$"):
            raise UnsupportedOperatorError(key)
        elif _is_operator_expr(condition):
            clauses.append(_compile_operators(key, condition))
        else:
            _reject_bare_operators(key, condition)
            clauses.append(lambda record, f=key, v=condition: strict_equal(lookup(record, f), v))

    if not clauses:
        return _match_all
    if len(clauses) == 1:
        return clauses[0]
    return lambda record: all(c(record) for c in clauses)


def matches(record: Mapping[str, Any], filter: Optional[Mapping[str, Any]]) -> bool:
    return compile_filter(filter)(record)


# --- Caller dialect --------------------------------------------------------

_REGEX_META = frozenset(".^$*+?{}[]|()")


def literal_pattern(pattern: str) -> Optional[str]:
    """Return the literal text a regex matches, or None if it is not a plain literal.

    Backslash-escaped punctuation (as produced by re.escape) counts as literal.
    """
    out = []
    chars = iter(pattern)
    for ch in chars:
        if ch == "\\":
            nxt = next(chars, None)
            if nxt is None or nxt.isalnum() or nxt == "_":
                return None
            out.append(nxt)
        elif ch in _REGEX_META:
            return None
        else:
            out.append(ch)
    return "".join(out)


def _normalize(value: Any) -> Any:
    if isinstance(value, datetime):
        return _utc(value)
    return value


def _resolve_operators(field: str, ops: Mapping[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for op, operand in ops.items():
        if op == REGEX:
            if not isinstance(operand, str):
                raise InvalidQueryError(f"{REGEX} on '{field}' expects a string")
            text = literal_pattern(operand)
            if text is None:
                raise UnsupportedOperatorError(f"{REGEX} /{operand}/", field)
            out[CONTAINS] = text
        elif op == OPTIONS:
            flags = set(operand or "")
            if flags - {"i"}:
                raise UnsupportedOperatorError(f"{OPTIONS} '{operand}'", field)
            out[IGNORE_CASE] = "i" in flags
        else:
            out[op] = _normalize(operand)
    if REGEX in ops or OPTIONS in ops:
        out.setdefault(IGNORE_CASE, False)
    return out


def resolve_filter(filter: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Translate a caller filter into the store's filter shape and validate it.

    ``$regex``/``$options`` pairs whose pattern is a plain literal become
    ``$contains``/``$ignore_case``. Naive datetimes are pinned to UTC.
    """
    if filter is None:
        return {}
    if not isinstance(filter, Mapping):
        raise InvalidQueryError(f"filter must be a mapping, got {type(filter).__name__}")
    out: Dict[str, Any] = {}
    for key, condition in filter.items():
        if key == OR and isinstance(condition, (list, tuple)):
            out[OR] = [resolve_filter(branch) if isinstance(branch, Mapping) else branch for branch in condition]
        elif _is_operator_expr(condition):
            out[key] = _resolve_operators(key, condition)
        else:
            out[key] = _normalize(condition)
    compile_filter(out)
    return out


__all__ = [
    "OR",
    "GTE",
    "LTE",
    "NE",
    "CONTAINS",
    "IGNORE_CASE",
    "REGEX",
    "OPTIONS",
    "MISSING",
    "Predicate",
    "lookup",
    "comparable",
    "strict_equal",
    "compile_filter",
    "matches",
    "literal_pattern",
    "resolve_filter",
]
