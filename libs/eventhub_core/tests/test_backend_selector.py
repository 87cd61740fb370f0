import pytest

from libs.eventhub_core.eventhub.config import Settings
from libs.eventhub_core.eventhub.errors import BackendNotSelectedError
from libs.eventhub_core.eventhub.storage import selector as selector_mod
from libs.eventhub_core.eventhub.storage.memory import DocumentStore
from libs.eventhub_core.eventhub.storage.selector import BackendSelector

SAMPLE_TITLES = ["Tech Conference 2025", "Music Festival"]


class _Connector:
    def __init__(self, result=None, error=None):
        self.calls = 0
        self.result = result
        self.error = error

    async def __call__(self, settings):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


@pytest.mark.asyncio
async def test_development_without_database_uses_memory_outright():
    connector = _Connector(error=AssertionError("must not connect"))
    sel = BackendSelector(Settings(mode="development"), connector=connector)
    db = await sel.connect()

    assert sel.using_in_memory is True
    assert connector.calls == 0
    events = await db.store.get_all("events")
    assert [e["title"] for e in events] == SAMPLE_TITLES
    assert all(e["status"] == "approved" for e in events)


@pytest.mark.asyncio
async def test_connection_failure_falls_back_and_reseeds():
    leftovers = DocumentStore()
    await leftovers.create("events", {"title": "half-seeded"})
    await leftovers.create("users", {"name": "stale"})

    connector = _Connector(error=ConnectionError("firestore unreachable"))
    sel = BackendSelector(
        Settings(mode="production", firestore_project="eventhub-prod"),
        connector=connector,
        store_factory=lambda: leftovers,
    )
    db = await sel.connect()

    assert connector.calls == 1
    assert sel.using_in_memory is True
    assert db.store is leftovers
    events = await db.store.get_all("events")
    assert [e["title"] for e in events] == SAMPLE_TITLES
    assert await db.store.get_all("users") == []


@pytest.mark.asyncio
async def test_sample_event_dates_are_one_and_two_weeks_out():
    sel = BackendSelector(Settings(mode="development"))
    db = await sel.connect()
    tech, music = await db.store.get_all("events")
    assert (music["date"] - tech["date"]).days == 7
    assert (tech["date"] - tech.created_at).days in (6, 7)


@pytest.mark.asyncio
async def test_connected_development_keeps_primary_and_seeds_scratch():
    primary = DocumentStore()
    sel = BackendSelector(Settings(mode="development", firestore_project="p"), connector=_Connector(result=primary))
    db = await sel.connect()

    assert sel.using_in_memory is False
    assert db.backend == "firestore"
    assert db.store is primary
    assert await primary.get_all("events") == []
    assert [e["title"] for e in await db.scratch.get_all("events")] == SAMPLE_TITLES


@pytest.mark.asyncio
async def test_connected_production_has_no_scratch():
    primary = DocumentStore()
    sel = BackendSelector(Settings(mode="production", firestore_project="p"), connector=_Connector(result=primary))
    db = await sel.connect()
    assert db.scratch is None
    assert sel.using_in_memory is False


@pytest.mark.asyncio
async def test_decision_is_made_once():
    connector = _Connector(error=ConnectionError("down"))
    sel = BackendSelector(Settings(mode="production"), connector=connector)
    first = await sel.connect()
    connector.error = None
    connector.result = DocumentStore()
    second = await sel.connect()

    assert first is second
    assert connector.calls == 1
    assert sel.using_in_memory is True


def test_flag_unreadable_before_selection():
    sel = BackendSelector(Settings())
    assert sel.selected is False
    with pytest.raises(BackendNotSelectedError):
        sel.using_in_memory


@pytest.mark.asyncio
async def test_connect_backend_never_raises(monkeypatch):
    sel = BackendSelector(
        Settings(mode="production", firestore_project="p"),
        connector=_Connector(error=RuntimeError("google-cloud-firestore is not installed")),
    )
    monkeypatch.setattr(selector_mod, "_selector", sel)

    assert await selector_mod.connect_backend() is None
    assert selector_mod.using_in_memory_backend() is True
    events = await selector_mod.get_database().store.get_all("events")
    assert len(events) == 2


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("EVENTHUB_ENV", "Production")
    monkeypatch.setenv("EVENTHUB_FIRESTORE_PROJECT", "eventhub-prod")
    monkeypatch.setenv("EVENTHUB_NAMESPACE", "test")
    monkeypatch.setenv("EVENTHUB_CONNECT_TIMEOUT_S", "2.5")
    s = Settings.from_env()
    assert s.mode == "production" and not s.development
    assert s.firestore_project == "eventhub-prod" and s.database_configured
    assert s.namespace == "test"
    assert s.connect_timeout_s == 2.5


def test_settings_defaults(monkeypatch):
    for var in (
        "EVENTHUB_ENV",
        "EVENTHUB_FIRESTORE_PROJECT",
        "GOOGLE_CLOUD_PROJECT",
        "EVENTHUB_NAMESPACE",
        "EVENTHUB_FIRESTORE_DATABASE",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("EVENTHUB_CONNECT_TIMEOUT_S", "soon")
    s = Settings.from_env()
    assert s.development
    assert not s.database_configured
    assert s.firestore_database == "(default)"
    assert s.connect_timeout_s == 5.0


def test_settings_fall_back_to_google_cloud_project(monkeypatch):
    monkeypatch.delenv("EVENTHUB_FIRESTORE_PROJECT", raising=False)
    monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "gcp-proj")
    assert Settings.from_env().firestore_project == "gcp-proj"
