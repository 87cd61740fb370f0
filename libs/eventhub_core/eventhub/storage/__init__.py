"""
EventHub Storage Backends

Storage abstraction with two interchangeable backends:
- In-memory document store for development and as the fallback when
  Firestore is unreachable
- Firestore for production

Business code goes through Database.model(); see shim.py.
"""

from .firestore import FirestoreStore, connect_firestore
from .memory import DocumentStore
from .pipeline import enrich, paginate, sort_records
from .query import compile_filter, matches, resolve_filter
from .records import Record
from .seed import sample_events, seed_sample_data
from .selector import (
    BackendSelector,
    connect_backend,
    get_database,
    get_selector,
    using_in_memory_backend,
)
from .shim import Database, Model, OneQuery, Query, Store

__all__ = [
    "Store",
    "Record",
    "DocumentStore",
    "FirestoreStore",
    "connect_firestore",
    "compile_filter",
    "matches",
    "resolve_filter",
    "sort_records",
    "paginate",
    "enrich",
    "Query",
    "OneQuery",
    "Model",
    "Database",
    "sample_events",
    "seed_sample_data",
    "BackendSelector",
    "connect_backend",
    "using_in_memory_backend",
    "get_database",
    "get_selector",
]
