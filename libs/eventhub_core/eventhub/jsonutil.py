from __future__ import annotations

import orjson
from typing import Any


def canonical_json_bytes(obj: Any) -> bytes:
    """Return deterministic JSON bytes (sorted keys, UTC datetimes, no trailing newline).

    Record values that orjson cannot encode natively fall back to ``str()``.
    """
    return orjson.dumps(obj, default=str, option=orjson.OPT_SORT_KEYS | orjson.OPT_UTC_Z)


def canonical_json(obj: Any) -> str:
    return canonical_json_bytes(obj).decode("utf-8")
