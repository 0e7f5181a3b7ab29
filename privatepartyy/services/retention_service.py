"""
privatepartyy.services.retention_service — Expiry Cleanup Jobs
===============================================================

Everything in PrivatePartyy is ephemeral.  Three jobs enforce that:

* :func:`cleanup_expired_posts` — posts older than ``max_age_hours``
  (12 h by default), plus their stored photos.
* :func:`cleanup_past_events` — events whose date is before today; rows
  under them (posts, attendees, DM threads) go with them via
  ``ON DELETE CASCADE``.
* :func:`cleanup_event_dms` — DM threads of events that ended more than
  ``grace_days`` ago.

Storage is cleaned **before** rows are deleted.  If the object store fails
the failure is logged and row deletion still proceeds: an orphaned object
is preferable to a row that can never be removed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta

from sqlalchemy import Engine, delete, select

from privatepartyy.database.engine import get_session, run_db
from privatepartyy.database.models import DMThread, Event, Post, PostMedia
from privatepartyy.services.storage import StorageBackend, StorageBackendError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CleanupResult:
    deleted_count: int = 0
    deleted_records: list[str] = field(default_factory=list)
    storage_errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": True,
            "deletedCount": self.deleted_count,
            "deletedRecords": self.deleted_records,
            "storageErrors": self.storage_errors,
        }


# ---------------------------------------------------------------------------
# Synchronous DB halves (run via run_db)
# ---------------------------------------------------------------------------
def _file_keys_for_posts(session, post_filter) -> tuple[list[str], list[str]]:
    posts = session.execute(select(Post.id, Post.file_key).where(post_filter)).all()
    post_ids = [row.id for row in posts]
    keys = [row.file_key for row in posts if row.file_key]
    if post_ids:
        keys += session.scalars(
            select(PostMedia.file_key).where(
                PostMedia.post_id.in_(post_ids), PostMedia.file_key.is_not(None)
            )
        ).all()
    # a single-file post's key may also appear on a media row
    return post_ids, list(dict.fromkeys(keys))


def find_expired_posts(engine: Engine, cutoff: datetime) -> tuple[list[str], list[str]]:
    with get_session(engine) as session:
        return _file_keys_for_posts(session, Post.created_at < cutoff)


def delete_posts(engine: Engine, post_ids: list[str]) -> int:
    with get_session(engine) as session:
        result = session.execute(delete(Post).where(Post.id.in_(post_ids)))
        return result.rowcount or 0


def find_past_events(engine: Engine, today: date) -> tuple[list[str], list[str]]:
    with get_session(engine) as session:
        event_ids = list(session.scalars(select(Event.id).where(Event.date < today)).all())
        if not event_ids:
            return [], []
        _, keys = _file_keys_for_posts(session, Post.event_id.in_(event_ids))
        return event_ids, keys


def delete_events(engine: Engine, event_ids: list[str]) -> int:
    with get_session(engine) as session:
        result = session.execute(delete(Event).where(Event.id.in_(event_ids)))
        return result.rowcount or 0


async def _remove_objects(storage: StorageBackend, keys: list[str], result: CleanupResult) -> None:
    if not keys:
        return
    try:
        await storage.remove(keys)
    except StorageBackendError as exc:
        logger.error("Storage cleanup failed for %d object(s): %s", len(keys), exc)
        result.storage_errors.append(str(exc))
    else:
        logger.info("Removed %d stored object(s)", len(keys))


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------
async def cleanup_expired_posts(
    engine: Engine,
    storage: StorageBackend,
    max_age_hours: int = 12,
    *,
    now: datetime | None = None,
) -> CleanupResult:
    """Delete posts created more than *max_age_hours* ago, storage first."""
    cutoff = (now or datetime.now(UTC)) - timedelta(hours=max_age_hours)
    result = CleanupResult()

    post_ids, keys = await run_db(find_expired_posts, engine, cutoff)
    if not post_ids:
        logger.info("Post cleanup: no expired records (cutoff=%s)", cutoff.isoformat())
        return result

    await _remove_objects(storage, keys, result)

    result.deleted_count = await run_db(delete_posts, engine, post_ids)
    result.deleted_records = post_ids
    for post_id in post_ids:
        logger.info("Deleted expired post %s", post_id)
    logger.info(
        "Post cleanup complete — %d post(s) removed (max_age_hours=%d)",
        result.deleted_count, max_age_hours,
    )
    return result


async def cleanup_past_events(
    engine: Engine,
    storage: StorageBackend,
    *,
    today: date | None = None,
) -> CleanupResult:
    """Delete events dated before *today* (UTC), with their stored photos."""
    today = today or datetime.now(UTC).date()
    result = CleanupResult()

    event_ids, keys = await run_db(find_past_events, engine, today)
    if not event_ids:
        logger.info("Event cleanup: no expired records (before %s)", today.isoformat())
        return result

    await _remove_objects(storage, keys, result)

    result.deleted_count = await run_db(delete_events, engine, event_ids)
    result.deleted_records = event_ids
    logger.info(
        "Event cleanup complete — %d event(s) removed: %s",
        result.deleted_count, ", ".join(event_ids),
    )
    return result


def cleanup_event_dms(
    engine: Engine,
    grace_days: int = 1,
    *,
    today: date | None = None,
) -> CleanupResult:
    """Delete DM threads (and their messages) of events that ended at least
    *grace_days* days ago."""
    today = today or datetime.now(UTC).date()
    last_date = today - timedelta(days=grace_days)

    with get_session(engine) as session:
        thread_ids = list(session.scalars(
            select(DMThread.id).where(
                DMThread.event_id.in_(select(Event.id).where(Event.date <= last_date))
            )
        ).all())
        if thread_ids:
            session.execute(delete(DMThread).where(DMThread.id.in_(thread_ids)))

    if thread_ids:
        logger.info("DM cleanup: removed %d thread(s) (events on or before %s)",
                    len(thread_ids), last_date.isoformat())
    else:
        logger.info("DM cleanup: no expired records")
    return CleanupResult(deleted_count=len(thread_ids), deleted_records=thread_ids)
