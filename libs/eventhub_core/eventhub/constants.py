from __future__ import annotations

from typing import Final, Tuple

# Environment variables
ENV_MODE: Final[str] = "EVENTHUB_ENV"                         # development | production
ENV_FIRESTORE_PROJECT: Final[str] = "EVENTHUB_FIRESTORE_PROJECT"
ENV_GOOGLE_CLOUD_PROJECT: Final[str] = "GOOGLE_CLOUD_PROJECT"  # fallback project id
ENV_FIRESTORE_DATABASE: Final[str] = "EVENTHUB_FIRESTORE_DATABASE"
ENV_NAMESPACE: Final[str] = "EVENTHUB_NAMESPACE"              # collection name suffix
ENV_CONNECT_TIMEOUT_S: Final[str] = "EVENTHUB_CONNECT_TIMEOUT_S"
ENV_LOG_LEVEL: Final[str] = "EVENTHUB_LOG_LEVEL"

DEV_MODE: Final[str] = "development"
DEFAULT_FIRESTORE_DATABASE: Final[str] = "(default)"
DEFAULT_CONNECT_TIMEOUT_S: Final[float] = 5.0

# System fields stamped on every record
ID_FIELD: Final[str] = "_id"
CREATED_AT: Final[str] = "created_at"
UPDATED_AT: Final[str] = "updated_at"
SYSTEM_FIELDS: Final[Tuple[str, ...]] = (ID_FIELD, CREATED_AT, UPDATED_AT)

# Collections
EVENTS: Final[str] = "events"
USERS: Final[str] = "users"
REGISTRATIONS: Final[str] = "registrations"
REVIEWS: Final[str] = "reviews"
SESSIONS: Final[str] = "sessions"
FEEDBACKS: Final[str] = "feedbacks"
NOTIFICATIONS: Final[str] = "notifications"
EXHIBITORS: Final[str] = "exhibitors"

KNOWN_COLLECTIONS: Final[Tuple[str, ...]] = (
    EVENTS,
    USERS,
    REGISTRATIONS,
    REVIEWS,
    SESSIONS,
    FEEDBACKS,
    NOTIFICATIONS,
    EXHIBITORS,
)

__all__ = [
    "ENV_MODE",
    "ENV_FIRESTORE_PROJECT",
    "ENV_GOOGLE_CLOUD_PROJECT",
    "ENV_FIRESTORE_DATABASE",
    "ENV_NAMESPACE",
    "ENV_CONNECT_TIMEOUT_S",
    "ENV_LOG_LEVEL",
    "DEV_MODE",
    "DEFAULT_FIRESTORE_DATABASE",
    "DEFAULT_CONNECT_TIMEOUT_S",
    "ID_FIELD",
    "CREATED_AT",
    "UPDATED_AT",
    "SYSTEM_FIELDS",
    "EVENTS",
    "USERS",
    "REGISTRATIONS",
    "REVIEWS",
    "SESSIONS",
    "FEEDBACKS",
    "NOTIFICATIONS",
    "EXHIBITORS",
    "KNOWN_COLLECTIONS",
]
