"""
privatepartyy.api.routes.maintenance — Cron-triggered cleanup
==============================================================

* ``POST /cleanup-events`` — posts past their max age and events whose
  date has passed.  If ``CLEANUP_CRON_SECRET`` is set, callers must send
  ``Authorization: Bearer <secret>``.
* ``POST /cleanup-event-dms`` — DM threads of ended events.  Always
  requires ``X-API-Key`` matching ``CLEANUP_API_KEY``.
"""

from __future__ import annotations

import logging
import os
import secrets
from typing import Annotated

from fastapi import APIRouter, Depends, Header
from sqlalchemy import Engine

from privatepartyy.api.deps import get_config, get_engine, get_storage
from privatepartyy.config import PrivatePartyyConfig
from privatepartyy.database.engine import run_db
from privatepartyy.errors import UnauthorizedError
from privatepartyy.services.retention_service import (
    cleanup_event_dms,
    cleanup_expired_posts,
    cleanup_past_events,
)
from privatepartyy.services.storage import StorageBackend

router = APIRouter(tags=["maintenance"])
logger = logging.getLogger(__name__)


def require_cron_secret(authorization: Annotated[str | None, Header()] = None) -> None:
    expected = os.getenv("CLEANUP_CRON_SECRET", "")
    if not expected:
        return
    if not authorization or not secrets.compare_digest(authorization, f"Bearer {expected}"):
        logger.warning("Rejected cleanup call with bad or missing bearer secret")
        raise UnauthorizedError("Unauthorized")


def require_cleanup_api_key(x_api_key: Annotated[str | None, Header()] = None) -> None:
    expected = os.getenv("CLEANUP_API_KEY", "")
    if not expected or not x_api_key or not secrets.compare_digest(x_api_key, expected):
        logger.warning("Rejected DM cleanup call with bad or missing API key")
        raise UnauthorizedError("Unauthorized")


@router.post("/cleanup-events", dependencies=[Depends(require_cron_secret)])
async def cleanup_events(
    engine: Engine = Depends(get_engine),
    storage: StorageBackend = Depends(get_storage),
    cfg: PrivatePartyyConfig = Depends(get_config),
):
    posts = await cleanup_expired_posts(engine, storage, cfg.post_max_age_hours)
    events = await cleanup_past_events(engine, storage)
    return {
        "success": True,
        "deletedCount": events.deleted_count,
        "deletedPosts": posts.deleted_count,
        "deletedEvents": events.deleted_records,
        "storageErrors": posts.storage_errors + events.storage_errors,
        "message": (
            f"Deleted {events.deleted_count} expired event(s) "
            f"and {posts.deleted_count} expired post(s)"
        ),
    }


@router.post("/cleanup-event-dms", dependencies=[Depends(require_cleanup_api_key)])
async def cleanup_dms(
    engine: Engine = Depends(get_engine),
    cfg: PrivatePartyyConfig = Depends(get_config),
):
    result = await run_db(cleanup_event_dms, engine, cfg.dm_cleanup_grace_days)
    return {
        "success": True,
        "message": "Event DMs cleaned up successfully",
        "deletedCount": result.deleted_count,
    }
