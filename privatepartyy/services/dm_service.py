"""
privatepartyy.services.dm_service — Capped Direct Messages
===========================================================

Two attendees of an event can open a private thread.  Each thread holds at
most ``limit`` messages (10 by default) in total, after which both sides
are nudged to swap contact details instead.

The cap is enforced with a conditional ``UPDATE … SET message_count =
message_count + 1 WHERE message_count < limit`` issued in the same
transaction as the message insert.  If the update touches no row the
insert is rolled back, so two concurrent senders can never push a thread
past the cap.

Participants are stored in canonical order (``participant1_id <
participant2_id``), so A→B and B→A land on the same thread.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Engine, or_, select, update
from sqlalchemy.exc import IntegrityError

from privatepartyy.constants import DEFAULT_AVATAR, DM_MAX_CONTENT_LENGTH, DM_MESSAGE_LIMIT
from privatepartyy.database.engine import get_session
from privatepartyy.database.models import DMMessage, DMThread
from privatepartyy.errors import (
    ForbiddenError,
    MessageLimitReachedError,
    NotParticipantError,
    ThreadNotFoundError,
    ValidationError,
)
from privatepartyy.services.preference_service import allows_dms

logger = logging.getLogger(__name__)


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def thread_dict(thread: DMThread) -> dict[str, Any]:
    return {
        "id": thread.id,
        "eventId": thread.event_id,
        "participant1Id": thread.participant1_id,
        "participant1Name": thread.participant1_name,
        "participant1Avatar": thread.participant1_avatar,
        "participant2Id": thread.participant2_id,
        "participant2Name": thread.participant2_name,
        "participant2Avatar": thread.participant2_avatar,
        "messageCount": thread.message_count,
        "lastMessageAt": _iso(thread.last_message_at),
        "createdAt": _iso(thread.created_at),
        "updatedAt": _iso(thread.updated_at),
    }


def message_dict(message: DMMessage) -> dict[str, Any]:
    return {
        "id": message.id,
        "threadId": message.thread_id,
        "senderId": message.sender_id,
        "senderName": message.sender_name,
        "senderAvatar": message.sender_avatar,
        "content": message.content,
        "createdAt": _iso(message.created_at),
    }


@dataclass(frozen=True, slots=True)
class SendResult:
    message: dict[str, Any]
    message_count: int
    limit: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.message_count)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "messageCount": self.message_count,
            "limit": self.limit,
            "remaining": self.remaining,
        }


# ---------------------------------------------------------------------------
# Threads
# ---------------------------------------------------------------------------
def canonical_pair(
    a: tuple[str, str, str | None], b: tuple[str, str, str | None]
) -> tuple[tuple[str, str, str | None], tuple[str, str, str | None]]:
    """Order two ``(id, name, avatar)`` participants by id."""
    return (a, b) if a[0] < b[0] else (b, a)


def _find_thread(session, event_id: str, p1_id: str, p2_id: str) -> DMThread | None:
    return session.scalar(
        select(DMThread).where(
            DMThread.event_id == event_id,
            DMThread.participant1_id == p1_id,
            DMThread.participant2_id == p2_id,
        )
    )


def get_or_create_thread(
    engine: Engine, event_id: str, data: dict[str, Any]
) -> tuple[dict[str, Any], bool]:
    """Return ``(thread, created)`` for the pair in *data*."""
    current_id = data.get("currentUserId")
    current_name = data.get("currentUserName")
    other_id = data.get("otherUserId")
    other_name = data.get("otherUserName")
    if not current_id or not current_name or not other_id or not other_name:
        raise ValidationError("Missing required fields")
    if not all(isinstance(v, str) for v in (current_id, current_name, other_id, other_name)):
        raise ValidationError("User IDs and names must be strings")
    if current_id == other_id:
        raise ValidationError("Cannot DM yourself")

    first, second = canonical_pair(
        (current_id, current_name, data.get("currentUserAvatar") or DEFAULT_AVATAR),
        (other_id, other_name, data.get("otherUserAvatar") or DEFAULT_AVATAR),
    )

    with get_session(engine) as session:
        existing = _find_thread(session, event_id, first[0], second[0])
        if existing is not None:
            return thread_dict(existing), False

    try:
        with get_session(engine) as session:
            if not allows_dms(session, event_id, other_id):
                raise ForbiddenError("This user is not accepting direct messages")
            thread = DMThread(
                event_id=event_id,
                participant1_id=first[0],
                participant1_name=first[1],
                participant1_avatar=first[2],
                participant2_id=second[0],
                participant2_name=second[1],
                participant2_avatar=second[2],
                message_count=0,
            )
            session.add(thread)
            session.flush()
            created = thread_dict(thread)
    except IntegrityError:
        # The other participant opened the same thread a moment earlier.
        with get_session(engine) as session:
            existing = _find_thread(session, event_id, first[0], second[0])
            if existing is None:
                raise
            return thread_dict(existing), False

    logger.info("DM thread %s opened in event %s", created["id"], event_id)
    return created, True


def list_threads(engine: Engine, event_id: str, user_id: str | None) -> list[dict[str, Any]]:
    if not user_id:
        raise ValidationError("User ID is required")
    with get_session(engine) as session:
        threads = session.scalars(
            select(DMThread)
            .where(
                DMThread.event_id == event_id,
                or_(DMThread.participant1_id == user_id, DMThread.participant2_id == user_id),
            )
            .order_by(DMThread.last_message_at.desc().nulls_last(), DMThread.created_at.desc())
        ).all()
        return [thread_dict(t) for t in threads]


def _load_thread_for(session, thread_id: str, user_id: str) -> DMThread:
    thread = session.get(DMThread, thread_id)
    if thread is None:
        raise ThreadNotFoundError(thread_id)
    if not thread.has_participant(user_id):
        raise NotParticipantError(thread_id, user_id)
    return thread


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------
def parse_since(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValidationError("Invalid since timestamp (ISO-8601 required)") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def list_messages(
    engine: Engine,
    thread_id: str,
    user_id: str | None,
    *,
    since: str | None = None,
    limit: int = DM_MESSAGE_LIMIT,
) -> dict[str, Any]:
    """Messages of a thread, oldest first.  ``since`` returns only newer ones."""
    if not user_id:
        raise ValidationError("User ID is required")
    after = parse_since(since)

    with get_session(engine) as session:
        thread = _load_thread_for(session, thread_id, user_id)
        stmt = select(DMMessage).where(DMMessage.thread_id == thread_id)
        if after is not None:
            stmt = stmt.where(DMMessage.created_at > after)
        messages = session.scalars(stmt.order_by(DMMessage.created_at.asc(), DMMessage.id)).all()

        return {
            "messages": [message_dict(m) for m in messages],
            "messageCount": thread.message_count,
            "limit": limit,
            "remaining": max(0, limit - thread.message_count),
        }


def try_send(
    engine: Engine,
    thread_id: str,
    sender_id: str | None,
    sender_name: str | None,
    sender_avatar: str | None,
    content: str | None,
    *,
    limit: int = DM_MESSAGE_LIMIT,
) -> SendResult:
    """Append a message if the thread is below its cap.

    Raises
    ------
    ValidationError
        Missing fields, or content empty / longer than 1000 characters.
    ThreadNotFoundError
        No such thread.
    NotParticipantError
        *sender_id* is not one of the two participants.
    MessageLimitReachedError
        The thread already holds *limit* messages.
    """
    if not sender_id or not sender_name or not content:
        raise ValidationError("Missing required fields")
    if not isinstance(content, str):
        raise ValidationError("Message content must be a string")
    text = content.strip()
    if not text:
        raise ValidationError("Message cannot be empty")
    if len(text) > DM_MAX_CONTENT_LENGTH:
        raise ValidationError(f"Message is too long (max {DM_MAX_CONTENT_LENGTH} characters)")

    now = datetime.now(UTC)
    with get_session(engine) as session:
        _load_thread_for(session, thread_id, sender_id)

        claimed = session.execute(
            update(DMThread)
            .where(DMThread.id == thread_id, DMThread.message_count < limit)
            .values(
                message_count=DMThread.message_count + 1,
                last_message_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        count = session.scalar(select(DMThread.message_count).where(DMThread.id == thread_id))
        if not claimed.rowcount:
            logger.info("DM thread %s is at its cap (%d/%d)", thread_id, count, limit)
            raise MessageLimitReachedError(limit, count)

        message = DMMessage(
            thread_id=thread_id,
            sender_id=sender_id,
            sender_name=sender_name,
            sender_avatar=sender_avatar or DEFAULT_AVATAR,
            content=text,
            created_at=now,
        )
        session.add(message)
        session.flush()
        result = SendResult(message=message_dict(message), message_count=count, limit=limit)

    logger.debug("DM %s sent in thread %s (%d/%d)", result.message["id"], thread_id, count, limit)
    return result
