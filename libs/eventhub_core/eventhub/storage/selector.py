"""
Backend selection, decided once per process.

    development + no Firestore project  -> in-memory store, seeded
    Firestore reachable                 -> Firestore (plus a seeded scratch
                                           in-memory store in development)
    Firestore unreachable               -> in-memory store, seeded

connect() never raises: a failed connection is logged and answered with the
in-memory store. Once a Database is chosen it is never replaced.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ..config import Settings
from ..errors import BackendNotSelectedError
from .firestore import connect_firestore
from .memory import DocumentStore
from .seed import seed_sample_data
from .shim import Database, Store

_log = logging.getLogger(__name__)

Connector = Callable[[Settings], Awaitable[Store]]


class BackendSelector:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        connector: Optional[Connector] = None,
        store_factory: Callable[[], DocumentStore] = DocumentStore,
    ):
        self._settings = settings
        self._connector = connector or connect_firestore
        self._store_factory = store_factory
        self._database: Optional[Database] = None
        self._lock = asyncio.Lock()

    @property
    def selected(self) -> bool:
        return self._database is not None

    @property
    def database(self) -> Database:
        if self._database is None:
            raise BackendNotSelectedError("storage backend not selected yet; await connect() first")
        return self._database

    @property
    def using_in_memory(self) -> bool:
        return self.database.using_in_memory

    async def connect(self) -> Database:
        """Choose the backend on first call; later calls return the same Database."""
        if self._database is not None:
            return self._database
        async with self._lock:
            if self._database is None:
                self._database = await self._select(self._settings or Settings.from_env())
        return self._database

    async def _in_memory(self, store: DocumentStore) -> Database:
        store.clear()
        await seed_sample_data(store)
        return Database(store=store, using_in_memory=True)

    async def _select(self, settings: Settings) -> Database:
        if settings.development and not settings.database_configured:
            _log.info("Using in-memory store for development (no Firestore project configured)")
            return await self._in_memory(self._store_factory())

        try:
            primary = await self._connector(settings)
        except Exception as e:
            _log.error("Firestore connection error: %s", e)
            _log.warning("Falling back to in-memory store")
            return await self._in_memory(self._store_factory())

        scratch = None
        if settings.development:
            scratch = self._store_factory()
            scratch.clear()
            await seed_sample_data(scratch)
            _log.info("Development mode: scratch in-memory store seeded alongside Firestore")
        return Database(store=primary, using_in_memory=False, scratch=scratch)


_selector = BackendSelector()


async def connect_backend() -> None:
    """Select the process-wide backend. Never raises."""
    db = await _selector.connect()
    _log.info("Storage backend: %s", db.backend)


def using_in_memory_backend() -> bool:
    return _selector.using_in_memory


def get_database() -> Database:
    return _selector.database


def get_selector() -> BackendSelector:
    return _selector


__all__ = [
    "BackendSelector",
    "Connector",
    "connect_backend",
    "using_in_memory_backend",
    "get_database",
    "get_selector",
]
