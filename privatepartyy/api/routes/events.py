"""
privatepartyy.api.routes.events — Events & attendees
=====================================================

``{id_or_token}`` path segments accept either the event UUID or its join
token; both are resolved through the ordered event sources.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel
from sqlalchemy import Engine

from privatepartyy.api.deps import get_engine, get_event_sources
from privatepartyy.database.engine import run_db
from privatepartyy.database.models import Event
from privatepartyy.errors import ForbiddenError, ValidationError
from privatepartyy.services import event_service
from privatepartyy.services.resolver import EventSource, require_event, source_for

router = APIRouter(tags=["events"])
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class AttendeeBody(BaseModel):
    userId: str | None = None


def _attendee_dict(a) -> dict:
    return {
        "id": a.id,
        "eventId": a.event_id,
        "userId": a.user_id,
        "status": a.status,
        "createdAt": a.created_at.isoformat() if a.created_at else None,
    }


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------
@router.post("/events", status_code=201)
async def create_event(
    body: dict[str, Any] = Body(...),
    engine: Engine = Depends(get_engine),
):
    """Create an event and issue its join token."""
    event = await run_db(event_service.create_event, engine, body)
    return {
        "eventId": event.id,
        "token": event.token,
        "event": event_service.event_dict(event),
    }


@router.get("/events")
async def list_events(
    engine: Engine = Depends(get_engine),
    host_id: str | None = Query(None, alias="hostId"),
    search: str | None = None,
    is_public: bool | None = Query(None, alias="isPublic"),
    from_date: str | None = Query(None, alias="fromDate"),
    to_date: str | None = Query(None, alias="toDate"),
    tags: str | None = Query(None, description="Comma-separated"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    order_by: str = Query("date", alias="orderBy"),
    order: str = Query("asc", pattern="^(asc|desc)$"),
):
    """Filtered, paginated listing.  Join tokens are never exposed here."""
    tag_list = [t.strip() for t in tags.split(",") if t.strip()] if tags else None
    events, total = await run_db(
        event_service.list_events,
        engine,
        host_id=host_id,
        search=search,
        is_public=is_public,
        from_date=from_date,
        to_date=to_date,
        tags=tag_list,
        limit=limit,
        offset=offset,
        order_by=order_by,
        descending=order == "desc",
    )
    return {
        "events": [event_service.event_dict(e, include_token=False) for e in events],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


# ---------------------------------------------------------------------------
# Single event
# ---------------------------------------------------------------------------
@router.get("/events/{id_or_token}")
async def get_event(
    id_or_token: str,
    token: str | None = None,
    sources: list[EventSource] = Depends(get_event_sources),
):
    """Fetch an event by UUID or join token; ``?token=`` must match if given."""
    resolved = await run_db(require_event, sources, id_or_token)
    event = await run_db(event_service.get_event, resolved.engine, resolved.event_id)
    if token and not secrets.compare_digest(event.token, token):
        raise ForbiddenError("Invalid event token")
    return event_service.event_dict(event)


@router.put("/events/{event_id}")
async def update_event(
    event_id: str,
    token: str | None = None,
    body: dict[str, Any] = Body(...),
    sources: list[EventSource] = Depends(get_event_sources),
):
    source = await run_db(source_for, sources, Event, event_id)
    event = await run_db(event_service.update_event, source.engine, event_id, token, body)
    return {"event": event_service.event_dict(event)}


@router.delete("/events/{event_id}")
async def delete_event(
    event_id: str,
    token: str | None = None,
    sources: list[EventSource] = Depends(get_event_sources),
):
    source = await run_db(source_for, sources, Event, event_id)
    await run_db(event_service.delete_event, source.engine, event_id, token)
    return {"success": True, "message": "Event deleted successfully"}


# ---------------------------------------------------------------------------
# Attendees
# ---------------------------------------------------------------------------
@router.get("/events/{id_or_token}/attendees")
async def list_attendees(
    id_or_token: str,
    sources: list[EventSource] = Depends(get_event_sources),
):
    resolved = await run_db(require_event, sources, id_or_token)
    attendees = await run_db(event_service.list_attendees, resolved.engine, resolved.event_id)
    return {"attendees": [_attendee_dict(a) for a in attendees], "count": len(attendees)}


@router.post("/events/{id_or_token}/attendees")
async def mark_going(
    id_or_token: str,
    body: AttendeeBody,
    sources: list[EventSource] = Depends(get_event_sources),
):
    if not body.userId:
        raise ValidationError("User ID is required")
    resolved = await run_db(require_event, sources, id_or_token)
    count = await run_db(event_service.mark_going, resolved.engine, resolved.event_id, body.userId)
    return {"success": True, "status": "going", "currentAttendees": count}


@router.delete("/events/{id_or_token}/attendees")
async def leave_event(
    id_or_token: str,
    user_id: str | None = Query(None, alias="userId"),
    sources: list[EventSource] = Depends(get_event_sources),
):
    if not user_id:
        raise ValidationError("User ID is required")
    resolved = await run_db(require_event, sources, id_or_token)
    count = await run_db(event_service.leave_event, resolved.engine, resolved.event_id, user_id)
    return {"success": True, "currentAttendees": count}
