from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import BaseModel, ConfigDict, field_validator

from libs.eventhub_core.eventhub.constants import EVENTS, ID_FIELD, REGISTRATIONS, USERS
from libs.eventhub_core.eventhub.errors import InvalidQueryError
from libs.eventhub_core.eventhub.storage import Database

_log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/events", tags=["events"])

ORGANIZER_FIELDS = ("name",)
ORGANIZER_PLACEHOLDER = {"name": "Organizer"}


async def get_db(request: Request) -> Database:
    return await request.app.state.selector.connect()


def require_user(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="missing X-User-Id")
    return x_user_id


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class EventIn(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: str
    description: Optional[str] = None
    date: datetime
    location: Optional[str] = None
    price: Optional[float] = None
    category: Optional[str] = None
    status: str = "pending"
    poster_url: Optional[str] = None

    @field_validator("date")
    @classmethod
    def _utc_date(cls, v: datetime) -> datetime:
        return _as_utc(v)


class EventUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[datetime] = None
    location: Optional[str] = None
    price: Optional[float] = None
    category: Optional[str] = None
    status: Optional[str] = None
    poster_url: Optional[str] = None

    @field_validator("date")
    @classmethod
    def _utc_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)


@router.post("", status_code=201)
async def create_event(body: EventIn, user_id: str = Depends(require_user), db: Database = Depends(get_db)):
    event = await db.model(EVENTS).create({**body.model_dump(exclude_none=True), "organizer": user_id})
    return {"event": event}


@router.put("/{event_id}")
async def update_event(
    event_id: str,
    body: EventUpdate,
    user_id: str = Depends(require_user),
    db: Database = Depends(get_db),
):
    update = body.model_dump(exclude_unset=True)
    update.pop("organizer", None)
    event = await db.model(EVENTS).find_one_and_update({ID_FIELD: event_id, "organizer": user_id}, update)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return {"event": event}


@router.delete("/{event_id}")
async def delete_event(event_id: str, user_id: str = Depends(require_user), db: Database = Depends(get_db)):
    event = await db.model(EVENTS).find_one_and_delete({ID_FIELD: event_id, "organizer": user_id})
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return {"message": "Deleted"}


def build_filter(
    q: Optional[str] = None,
    category: Optional[str] = None,
    status: Optional[str] = None,
    organizer: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> Dict[str, Any]:
    filt: Dict[str, Any] = {}
    if q:
        pattern = re.escape(q)
        filt["$or"] = [
            {"title": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
        ]
    if category:
        filt["category"] = category
    if status:
        filt["status"] = status
    if organizer:
        filt["organizer"] = organizer
    if date_from or date_to:
        filt["date"] = {}
        if date_from:
            filt["date"]["$gte"] = _as_utc(date_from)
        if date_to:
            filt["date"]["$lte"] = _as_utc(date_to)
    return filt


@router.get("")
async def list_events(
    q: Optional[str] = None,
    category: Optional[str] = None,
    status: Optional[str] = None,
    organizer: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    sort_by: str = "date",
    sort_order: str = "asc",
    page: int = 1,
    limit: int = 10,
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    if limit < 1:
        raise InvalidQueryError(f"limit must be >= 1, got {limit}")
    filt = build_filter(q, category, status, organizer, date_from, date_to)
    skip = (page - 1) * limit
    _log.debug("list_events filter=%s sort=%s:%s skip=%s limit=%s", filt, sort_by, sort_order, skip, limit)

    model = db.model(EVENTS)
    events = await (
        model.find(filt)
        .sort(sort_by, sort_order)
        .skip(skip)
        .limit(limit)
        .populate("organizer", USERS, ORGANIZER_FIELDS, ORGANIZER_PLACEHOLDER)
    )
    total = await model.count(filt)

    return {
        "events": events,
        "pagination": {
            "current_page": page,
            "total_pages": math.ceil(total / limit),
            "total_events": total,
            "has_next": skip + limit < total,
            "has_prev": page > 1,
        },
    }


@router.get("/{event_id}")
async def get_event(event_id: str, db: Database = Depends(get_db)) -> Dict[str, Any]:
    event = await db.model(EVENTS).find_by_id(event_id).populate(
        "organizer", USERS, ORGANIZER_FIELDS, ORGANIZER_PLACEHOLDER
    )
    if event is None:
        raise HTTPException(status_code=404, detail="Not found")
    count = await db.model(REGISTRATIONS).count({"event": event_id, "status": {"$ne": "cancelled"}})
    return {"event": event, "registrations": count}
