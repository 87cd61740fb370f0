from datetime import datetime, timedelta, timezone

import pytest

from libs.eventhub_core.eventhub.errors import InvalidQueryError
from libs.eventhub_core.eventhub.storage.pipeline import enrich, is_descending, paginate, sort_records
from libs.eventhub_core.eventhub.storage.records import Record


def _rows(*prices):
    return [{"i": i, "price": p} for i, p in enumerate(prices)]


def test_sort_ascending_and_descending():
    rows = _rows(30, 10, 20)
    assert [r["price"] for r in sort_records(rows, "price")] == [10, 20, 30]
    assert [r["price"] for r in sort_records(rows, "price", "desc")] == [30, 20, 10]
    assert [r["price"] for r in sort_records(rows, "price", -1)] == [30, 20, 10]


def test_sort_is_stable_for_equal_keys_in_both_directions():
    rows = _rows(5, 1, 5, 1, 5)
    assert [r["i"] for r in sort_records(rows, "price", "asc")] == [1, 3, 0, 2, 4]
    assert [r["i"] for r in sort_records(rows, "price", "desc")] == [0, 2, 4, 1, 3]


def test_sort_puts_missing_first_ascending():
    rows = [{"i": 0, "price": 3}, {"i": 1}, {"i": 2, "price": None}, {"i": 3, "price": 1}]
    assert [r["i"] for r in sort_records(rows, "price")] == [1, 2, 3, 0]


def test_sort_dates_mixed_naive_and_aware():
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    rows = [{"d": base + timedelta(days=2)}, {"d": (base + timedelta(days=1)).replace(tzinfo=None)}]
    out = sort_records(rows, "d")
    assert out[0]["d"].day == 2


def test_sort_does_not_mutate_input():
    rows = _rows(2, 1)
    sort_records(rows, "price")
    assert [r["price"] for r in rows] == [2, 1]


def test_sort_mixed_types_raises():
    with pytest.raises(InvalidQueryError):
        sort_records([{"a": 1}, {"a": "x"}], "a")


@pytest.mark.parametrize("direction", ["up", 0, 2, True, None])
def test_bad_direction_raises(direction):
    with pytest.raises(InvalidQueryError):
        is_descending(direction)


def test_paginate_window_and_clamping():
    rows = list(range(10))
    assert paginate(rows, 2, 3) == [2, 3, 4]
    assert paginate(rows, 8, 5) == [8, 9]
    assert paginate(rows, 10, 5) == []
    assert paginate(rows, 50, 5) == []
    assert paginate(rows, 3) == [3, 4, 5, 6, 7, 8, 9]
    assert paginate(rows, limit=2) == [0, 1]
    assert paginate(rows) == rows
    assert paginate(rows, 0, 0) == []


@pytest.mark.parametrize("skip,limit", [(-1, 5), (0, -1), ("1", 2), (1.5, 2), (True, 1)])
def test_paginate_rejects_bad_counts(skip, limit):
    with pytest.raises(InvalidQueryError):
        paginate([1, 2, 3], skip, limit)


def test_enrich_resolves_references():
    users = {"u1": {"_id": "u1", "name": "Ada", "email": "ada@example.com"}}
    rows = [Record({"_id": "e1", "organizer": "u1", "title": "A"})]
    out = enrich(rows, "organizer", users.get, ("name",))
    assert out[0]["organizer"] == {"_id": "u1", "name": "Ada"}
    assert isinstance(out[0], Record)
    assert rows[0]["organizer"] == "u1"


def test_enrich_unresolved_uses_placeholder():
    rows = [{"organizer": "ghost"}, {"organizer": None}, {"title": "no organizer"}]
    out = enrich(rows, "organizer", {}.get, ("name", "email"), {"name": "Organizer"})
    assert out[0]["organizer"] == {"_id": "ghost", "name": "Organizer", "email": None}
    assert out[1]["organizer"] == {"_id": None, "name": "Organizer", "email": None}
    assert out[2] == {"title": "no organizer"}


def test_enrich_default_placeholder():
    out = enrich([{"organizer": "x"}], "organizer", lambda raw: None)
    assert out[0]["organizer"] == {"_id": "x", "name": None}
