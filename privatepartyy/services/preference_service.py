"""
privatepartyy.services.preference_service — Per-event user preferences
======================================================================

One row per ``(event, user)``.  Today it carries a single switch,
``allowDMs``: a user who turns it off cannot be pulled into a new DM
thread in that event.  Users without a row get the defaults.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from privatepartyy.database.engine import get_session
from privatepartyy.database.models import EventUserPreference
from privatepartyy.errors import ConflictError, ValidationError

logger = logging.getLogger(__name__)


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def preference_dict(pref: EventUserPreference) -> dict[str, Any]:
    return {
        "id": pref.id,
        "eventId": pref.event_id,
        "userId": pref.user_id,
        "userEmail": pref.user_email,
        "allowDMs": pref.allow_dms,
        "createdAt": _iso(pref.created_at),
        "updatedAt": _iso(pref.updated_at),
    }


def _find(session: Session, event_id: str, user_id: str) -> EventUserPreference | None:
    return session.scalar(
        select(EventUserPreference).where(
            EventUserPreference.event_id == event_id,
            EventUserPreference.user_id == user_id,
        )
    )


def get_preferences(engine: Engine, event_id: str, user_id: str | None) -> dict[str, Any]:
    """Stored preferences of *user_id*, or the defaults when none are stored."""
    if not user_id:
        raise ValidationError("User ID is required")
    with get_session(engine) as session:
        pref = _find(session, event_id, user_id)
        if pref is None:
            return {
                "eventId": event_id,
                "userId": user_id,
                "allowDMs": True,
                "createdAt": None,
                "updatedAt": None,
            }
        return preference_dict(pref)


def upsert_preferences(engine: Engine, event_id: str, data: dict[str, Any]) -> dict[str, Any]:
    user_id = data.get("userId")
    if not user_id or not isinstance(user_id, str):
        raise ValidationError("User ID is required")
    allow_dms = data.get("allowDMs", True)
    if allow_dms is None:
        allow_dms = True
    if not isinstance(allow_dms, bool):
        raise ValidationError("allowDMs must be a boolean")

    try:
        with get_session(engine) as session:
            pref = _find(session, event_id, user_id)
            if pref is None:
                pref = EventUserPreference(event_id=event_id, user_id=user_id)
                session.add(pref)
            else:
                pref.updated_at = datetime.now(UTC)
            pref.allow_dms = allow_dms
            pref.user_email = data.get("userEmail")
            session.flush()
            result = preference_dict(pref)
    except IntegrityError as exc:
        raise ConflictError("Preferences were updated concurrently, please retry") from exc

    logger.info(
        "Preferences for %s in event %s: allowDMs=%s", user_id, event_id, allow_dms
    )
    return result


def allows_dms(session: Session, event_id: str, user_id: str) -> bool:
    """Whether *user_id* accepts new DM threads in *event_id* (default yes)."""
    allowed = session.scalar(
        select(EventUserPreference.allow_dms).where(
            EventUserPreference.event_id == event_id,
            EventUserPreference.user_id == user_id,
        )
    )
    return True if allowed is None else allowed
