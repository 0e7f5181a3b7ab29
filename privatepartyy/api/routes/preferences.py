"""
privatepartyy.api.routes.preferences — Per-event user preferences
=================================================================

Mounted before the events router so ``/events/user-preferences`` is not
taken for an event token.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query

from privatepartyy.api.deps import get_event_sources
from privatepartyy.database.engine import run_db
from privatepartyy.errors import ValidationError
from privatepartyy.services import preference_service
from privatepartyy.services.resolver import EventSource, require_event

router = APIRouter(tags=["preferences"])


@router.get("/events/user-preferences")
async def get_preferences(
    event_id: str | None = Query(None, alias="eventId"),
    user_id: str | None = Query(None, alias="userId"),
    sources: list[EventSource] = Depends(get_event_sources),
):
    if not event_id or not user_id:
        raise ValidationError("Missing required query parameters: eventId and userId")
    resolved = await run_db(require_event, sources, event_id)
    prefs = await run_db(
        preference_service.get_preferences, resolved.engine, resolved.event_id, user_id
    )
    return {"preferences": prefs}


@router.post("/events/user-preferences")
async def save_preferences(
    body: dict[str, Any] = Body(...),
    sources: list[EventSource] = Depends(get_event_sources),
):
    """Create or update the caller's preferences for one event."""
    event_id = body.get("eventId")
    if not event_id or not isinstance(event_id, str) or not body.get("userId"):
        raise ValidationError("Missing required fields: eventId and userId are required")
    resolved = await run_db(require_event, sources, event_id)
    prefs = await run_db(
        preference_service.upsert_preferences, resolved.engine, resolved.event_id, body
    )
    return {"success": True, "preferences": prefs}
