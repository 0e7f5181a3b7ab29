"""
privatepartyy.services.event_service — Events, Join Tokens & Attendees
=======================================================================

Events are created by a host and identified publicly by a short join token
(``<title-slug>-<4 hex>``) that is encoded into the event QR code.  The
token column is unique; on the rare slug+suffix collision creation retries
with a fresh suffix.
"""

from __future__ import annotations

import logging
import re
import secrets
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Engine, delete, func, or_, select
from sqlalchemy.exc import IntegrityError

from privatepartyy.constants import ANONYMOUS_HOST_NAME
from privatepartyy.database.engine import get_session
from privatepartyy.database.models import AttendeeStatus, Event, EventAttendee
from privatepartyy.engine.validation import ensure_valid, validate_event_data
from privatepartyy.errors import ForbiddenError, NotFoundError, UnauthorizedError, ValidationError

logger = logging.getLogger(__name__)

TOKEN_ATTEMPTS = 5
_SLUG_STRIP = re.compile(r"[^a-z0-9]+")

# camelCase request key → column, for host updates
UPDATABLE_FIELDS: dict[str, str] = {
    "title": "title",
    "description": "description",
    "date": "date",
    "time": "time",
    "location": "location",
    "maxAttendees": "max_attendees",
    "isPublic": "is_public",
    "tags": "tags",
    "imageUrl": "image_url",
}

ORDERABLE_COLUMNS = {
    "date": Event.date,
    "created_at": Event.created_at,
    "title": Event.title,
    "current_attendees": Event.current_attendees,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def generate_event_token(title: str) -> str:
    """URL-friendly slug of *title* plus a 4-hex random suffix."""
    slug = _SLUG_STRIP.sub("-", title.lower()).strip("-")[:30].strip("-")
    suffix = secrets.token_hex(2)
    return f"{slug}-{suffix}" if slug else f"event-{suffix}"


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def event_dict(event: Event, *, include_token: bool = True) -> dict[str, Any]:
    data = {
        "id": event.id,
        "name": event.title,
        "title": event.title,
        "description": event.description,
        "date": _iso(event.date),
        "time": event.time,
        "location": event.location,
        "maxAttendees": event.max_attendees,
        "currentAttendees": event.current_attendees,
        "isPublic": event.is_public,
        "hostId": event.host_id,
        "hostName": event.host_name,
        "hostEmail": event.host_email,
        "tags": event.tags,
        "imageUrl": event.image_url,
        "createdAt": _iso(event.created_at),
        "updatedAt": _iso(event.updated_at),
    }
    if include_token:
        data["token"] = event.token
    return data


def _parse_date(value: str | None):
    return datetime.strptime(value, "%Y-%m-%d").date() if value else None


# ---------------------------------------------------------------------------
# Create / read
# ---------------------------------------------------------------------------
def create_event(engine: Engine, data: dict[str, Any]) -> Event:
    """Validate *data* (camelCase request body) and insert a new event."""
    ensure_valid(validate_event_data(data, require_date_and_time=True))

    title = (data.get("title") or data.get("name") or "").strip()
    host_email = data.get("hostEmail")

    for attempt in range(1, TOKEN_ATTEMPTS + 1):
        event = Event(
            token=generate_event_token(title),
            title=title,
            description=(data.get("description") or "").strip(),
            date=_parse_date(data.get("date")),
            time=data.get("time"),
            location=(data.get("location") or "").strip() or None,
            max_attendees=data.get("maxAttendees"),
            current_attendees=0,
            is_public=data.get("isPublic", True),
            host_id=data.get("hostId") or "anonymous",
            host_name=(data.get("hostName") or "").strip() or ANONYMOUS_HOST_NAME,
            host_email=host_email.strip().lower() if host_email else None,
            tags=[t.strip() for t in data["tags"]] if data.get("tags") else None,
            image_url=(data.get("imageUrl") or "").strip() or None,
        )
        try:
            with get_session(engine) as session:
                session.add(event)
        except IntegrityError:
            logger.warning(
                "Join token collision for %r (attempt %d/%d)", event.token, attempt, TOKEN_ATTEMPTS
            )
            continue
        logger.info("Event created: %s (token=%s)", event.id, event.token)
        return event

    raise ValidationError("Could not allocate a unique join token; try a different title")


def get_event(engine: Engine, event_id: str) -> Event:
    with get_session(engine) as session:
        event = session.get(Event, event_id)
        if event is None:
            raise NotFoundError("Event not found")
        return event


def list_events(
    engine: Engine,
    *,
    host_id: str | None = None,
    search: str | None = None,
    is_public: bool | None = None,
    from_date: str | None = None,
    to_date: str | None = None,
    tags: list[str] | None = None,
    limit: int = 50,
    offset: int = 0,
    order_by: str = "date",
    descending: bool = False,
) -> tuple[list[Event], int]:
    """Filtered, paginated event listing.  Returns ``(events, total)``."""
    stmt = select(Event)
    if host_id:
        stmt = stmt.where(Event.host_id == host_id)
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(
            or_(
                Event.title.ilike(pattern),
                Event.description.ilike(pattern),
                Event.location.ilike(pattern),
            )
        )
    if is_public is not None:
        stmt = stmt.where(Event.is_public.is_(is_public))
    if from_date:
        stmt = stmt.where(Event.date >= _parse_date(from_date))
    if to_date:
        stmt = stmt.where(Event.date <= _parse_date(to_date))

    column = ORDERABLE_COLUMNS.get(order_by, Event.date)
    stmt = stmt.order_by(column.desc() if descending else column.asc(), Event.id)

    with get_session(engine) as session:
        rows = list(session.scalars(stmt).all())

    # Tag containment is done in Python so it behaves the same on every dialect.
    if tags:
        wanted = set(tags)
        rows = [e for e in rows if wanted.issubset(set(e.tags or []))]

    total = len(rows)
    return rows[offset:offset + limit], total


# ---------------------------------------------------------------------------
# Host mutations (token-gated)
# ---------------------------------------------------------------------------
def _check_host_token(event: Event | None, token: str | None) -> Event:
    if event is None:
        raise NotFoundError("Event not found")
    if not token:
        raise UnauthorizedError("Token is required")
    if not secrets.compare_digest(event.token, token):
        raise ForbiddenError("Invalid token")
    return event


def update_event(engine: Engine, event_id: str, token: str | None, data: dict[str, Any]) -> Event:
    updates = {col: data[key] for key, col in UPDATABLE_FIELDS.items() if key in data}
    if not updates:
        raise ValidationError("No valid fields to update")

    with get_session(engine) as session:
        event = _check_host_token(session.get(Event, event_id), token)

        merged = {"title": event.title, **{k: v for k, v in data.items() if k in UPDATABLE_FIELDS}}
        ensure_valid(validate_event_data(merged, require_date_and_time=False))
        if "date" in updates:
            updates["date"] = _parse_date(updates["date"])

        for column, value in updates.items():
            setattr(event, column, value)
        event.updated_at = datetime.now(UTC)

    logger.info("Event %s updated: %s", event_id, ", ".join(sorted(updates)))
    return event


def delete_event(engine: Engine, event_id: str, token: str | None) -> None:
    with get_session(engine) as session:
        event = _check_host_token(session.get(Event, event_id), token)
        session.delete(event)
    logger.info("Event %s deleted by host", event_id)


# ---------------------------------------------------------------------------
# Attendees
# ---------------------------------------------------------------------------
def list_attendees(engine: Engine, event_id: str) -> list[EventAttendee]:
    with get_session(engine) as session:
        return list(session.scalars(
            select(EventAttendee)
            .where(
                EventAttendee.event_id == event_id,
                EventAttendee.status == AttendeeStatus.GOING,
            )
            .order_by(EventAttendee.created_at)
        ).all())


def _refresh_attendee_count(session, event_id: str) -> int:
    count = session.scalar(
        select(func.count()).select_from(EventAttendee).where(
            EventAttendee.event_id == event_id,
            EventAttendee.status == AttendeeStatus.GOING,
        )
    ) or 0
    event = session.get(Event, event_id)
    if event is not None:
        event.current_attendees = count
    return count


def mark_going(engine: Engine, event_id: str, user_id: str) -> int:
    """Idempotently mark *user_id* as going.  Returns the new attendee count."""
    try:
        with get_session(engine) as session:
            existing = session.scalar(
                select(EventAttendee).where(
                    EventAttendee.event_id == event_id, EventAttendee.user_id == user_id
                )
            )
            if existing is None:
                session.add(EventAttendee(event_id=event_id, user_id=user_id))
            else:
                existing.status = AttendeeStatus.GOING
            session.flush()
            return _refresh_attendee_count(session, event_id)
    except IntegrityError:
        # A concurrent request inserted the same (event, user) row first.
        with get_session(engine) as session:
            return _refresh_attendee_count(session, event_id)


def leave_event(engine: Engine, event_id: str, user_id: str) -> int:
    with get_session(engine) as session:
        session.execute(
            delete(EventAttendee).where(
                EventAttendee.event_id == event_id, EventAttendee.user_id == user_id
            )
        )
        return _refresh_attendee_count(session, event_id)
