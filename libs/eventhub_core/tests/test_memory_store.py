import pytest

from libs.eventhub_core.eventhub.constants import KNOWN_COLLECTIONS
from libs.eventhub_core.eventhub.errors import InvalidCollectionError, UnsupportedOperatorError
from libs.eventhub_core.eventhub.storage.memory import DocumentStore


@pytest.fixture
def store():
    return DocumentStore()


@pytest.mark.asyncio
async def test_create_then_find_by_id_returns_equal_record(store):
    rec = await store.create("events", {"title": "Tech Conference", "price": 99.99})
    assert rec["title"] == "Tech Conference"
    assert isinstance(rec.id, str) and rec.id
    assert rec.created_at == rec.updated_at
    assert rec.created_at.tzinfo is not None

    got = await store.find_by_id("events", rec.id)
    assert got == rec


@pytest.mark.asyncio
async def test_system_fields_in_create_data_are_ignored(store):
    rec = await store.create("events", {"_id": "mine", "created_at": "yesterday", "title": "x"})
    assert rec.id != "mine"
    assert rec.created_at != "yesterday"


@pytest.mark.asyncio
async def test_ids_are_unique_when_clock_stalls(store, monkeypatch):
    import libs.eventhub_core.eventhub.storage.records as records

    monkeypatch.setattr(records.time, "time_ns", lambda: 1_700_000_000_000_000_000)
    a = await store.create("events", {"n": 1})
    b = await store.create("events", {"n": 2})
    c = await store.create("users", {"n": 3})
    assert len({a.id, b.id, c.id}) == 3
    assert int(a.id) < int(b.id) < int(c.id)


@pytest.mark.asyncio
async def test_ids_not_reused_after_delete(store):
    a = await store.create("events", {"n": 1})
    await store.delete("events", a.id)
    b = await store.create("events", {"n": 2})
    assert b.id != a.id


@pytest.mark.asyncio
async def test_get_all_keeps_insertion_order(store):
    for n in range(5):
        await store.create("reviews", {"n": n})
    assert [r["n"] for r in await store.get_all("reviews")] == [0, 1, 2, 3, 4]


@pytest.mark.asyncio
async def test_unknown_collection_is_empty_until_first_write(store):
    assert await store.get_all("tickets") == []
    assert await store.find("tickets", {"a": 1}) == []
    assert await store.find_by_id("tickets", "1") is None
    await store.create("tickets", {"a": 1})
    assert len(await store.get_all("tickets")) == 1
    assert "tickets" in store.collections()


def test_known_collections_exist_at_boot(store):
    assert set(KNOWN_COLLECTIONS) <= set(store.collections())


@pytest.mark.asyncio
async def test_update_merges_and_refreshes_timestamp(store):
    rec = await store.create("events", {"title": "A", "price": 10, "status": "pending"})
    updated = await store.update("events", rec.id, {"status": "approved"})
    assert updated["status"] == "approved"
    assert updated["title"] == "A" and updated["price"] == 10
    assert updated.created_at == rec.created_at
    assert updated.updated_at > updated.created_at

    got = await store.find_by_id("events", rec.id)
    assert got == updated


@pytest.mark.asyncio
async def test_update_cannot_change_identity(store):
    rec = await store.create("events", {"title": "A"})
    updated = await store.update("events", rec.id, {"_id": "other", "created_at": None, "title": "B"})
    assert updated.id == rec.id
    assert updated.created_at == rec.created_at
    assert updated["title"] == "B"


@pytest.mark.asyncio
async def test_update_missing_returns_none(store):
    assert await store.update("events", "nope", {"a": 1}) is None


@pytest.mark.asyncio
async def test_delete_twice_returns_none_second_time(store):
    rec = await store.create("events", {"title": "A"})
    removed = await store.delete("events", rec.id)
    assert removed == rec
    assert await store.delete("events", rec.id) is None
    assert await store.find_by_id("events", rec.id) is None


@pytest.mark.asyncio
async def test_returned_records_are_copies(store):
    rec = await store.create("events", {"title": "A"})
    rec["title"] = "mutated"
    (await store.get_all("events"))[0]["title"] = "mutated again"
    assert (await store.find_by_id("events", rec.id))["title"] == "A"


@pytest.mark.asyncio
async def test_nested_values_are_isolated_in_both_directions(store):
    data = {"title": "A", "venue": {"city": "NY"}, "tags": ["music"]}
    rec = await store.create("events", data)
    data["venue"]["city"] = "LA"
    data["tags"].append("outdoor")
    rec["venue"]["city"] = "SF"

    (await store.get_all("events"))[0]["venue"]["city"] = "Boston"
    (await store.find("events", {"title": "A"}))[0]["tags"].append("jazz")
    (await store.find_by_id("events", rec.id))["venue"]["city"] = "Austin"

    stored = await store.find_by_id("events", rec.id)
    assert stored["venue"] == {"city": "NY"}
    assert stored["tags"] == ["music"]


@pytest.mark.asyncio
async def test_update_does_not_share_nested_values(store):
    rec = await store.create("events", {"venue": {"city": "NY"}})
    patch = {"venue": {"city": "LA"}}
    updated = await store.update("events", rec.id, patch)
    patch["venue"]["city"] = "SF"
    updated["venue"]["city"] = "Austin"
    assert (await store.find_by_id("events", rec.id))["venue"] == {"city": "LA"}


@pytest.mark.asyncio
async def test_find_filters_and_empty_filter_returns_all(store):
    await store.create("events", {"status": "approved"})
    await store.create("events", {"status": "pending"})
    assert len(await store.find("events", {})) == 2
    assert len(await store.find("events", None)) == 2
    approved = await store.find("events", {"status": "approved"})
    assert [r["status"] for r in approved] == ["approved"]


@pytest.mark.asyncio
async def test_find_rejects_unsupported_operator_even_when_empty(store):
    with pytest.raises(UnsupportedOperatorError):
        await store.find("exhibitors", {"price": {"$gt": 10}})


@pytest.mark.asyncio
@pytest.mark.parametrize("name", [None, 42, "", b"events"])
async def test_bad_collection_name_raises(store, name):
    with pytest.raises(InvalidCollectionError):
        await store.get_all(name)
    with pytest.raises(TypeError):
        await store.create(name, {"a": 1})


@pytest.mark.asyncio
async def test_clear_one_or_all(store):
    await store.create("events", {"a": 1})
    await store.create("users", {"a": 1})
    store.clear("events")
    assert await store.get_all("events") == []
    assert len(await store.get_all("users")) == 1
    store.clear()
    assert await store.get_all("users") == []
