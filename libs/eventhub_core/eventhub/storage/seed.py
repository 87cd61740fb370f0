from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from ..constants import EVENTS
from ..jsonutil import canonical_json
from .records import Record

_log = logging.getLogger(__name__)


def sample_events(now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """The two approved events every cold in-memory start is seeded with."""
    now = now or datetime.now(timezone.utc)
    return [
        {
            "title": "Tech Conference 2025",
            "description": "Annual technology conference with industry leaders",
            "date": now + timedelta(days=7),
            "location": "Convention Center",
            "price": 99.99,
            "organizer": "Organizer Inc.",
            "status": "approved",
        },
        {
            "title": "Music Festival",
            "description": "Three-day music festival with top artists",
            "date": now + timedelta(days=14),
            "location": "Central Park",
            "price": 149.99,
            "organizer": "Festival Corp",
            "status": "approved",
        },
    ]


async def seed_sample_data(store: Any, now: Optional[datetime] = None) -> List[Record]:
    """Clear the events collection of ``store`` and insert the sample events."""
    store.clear(EVENTS)
    created = []
    for data in sample_events(now):
        record = await store.create(EVENTS, data)
        _log.debug("seeded %s: %s", EVENTS, canonical_json(record))
        created.append(record)
    _log.info("In-memory store seeded with %d sample events", len(created))
    return created


__all__ = ["sample_events", "seed_sample_data"]
