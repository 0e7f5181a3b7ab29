"""
privatepartyy.api.routes.dm — Direct-message threads
=====================================================

Clients poll ``GET /dm-threads/{id}/messages?userId=…&since=…`` for new
messages; ``since`` limits the response to messages created after it.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from privatepartyy.api.deps import get_config, get_event_sources
from privatepartyy.config import PrivatePartyyConfig
from privatepartyy.database.engine import run_db
from privatepartyy.database.models import DMThread
from privatepartyy.services import dm_service
from privatepartyy.services.resolver import EventSource, require_event, source_for

router = APIRouter(tags=["dm"])


class MessageBody(BaseModel):
    senderId: str | None = None
    senderName: str | None = None
    senderAvatar: str | None = None
    content: str | None = None


@router.get("/events/{id_or_token}/dm-threads")
async def list_threads(
    id_or_token: str,
    user_id: str | None = Query(None, alias="userId"),
    sources: list[EventSource] = Depends(get_event_sources),
):
    resolved = await run_db(require_event, sources, id_or_token)
    threads = await run_db(dm_service.list_threads, resolved.engine, resolved.event_id, user_id)
    return {"threads": threads}


@router.post("/events/{id_or_token}/dm-threads")
async def open_thread(
    id_or_token: str,
    body: dict[str, Any] = Body(...),
    sources: list[EventSource] = Depends(get_event_sources),
):
    """Return the pair's thread (200) or create it (201)."""
    resolved = await run_db(require_event, sources, id_or_token)
    thread, created = await run_db(
        dm_service.get_or_create_thread, resolved.engine, resolved.event_id, body
    )
    return JSONResponse({"thread": thread}, status_code=201 if created else 200)


@router.get("/dm-threads/{thread_id}/messages")
async def list_messages(
    thread_id: str,
    user_id: str | None = Query(None, alias="userId"),
    since: str | None = None,
    sources: list[EventSource] = Depends(get_event_sources),
    cfg: PrivatePartyyConfig = Depends(get_config),
):
    source = await run_db(source_for, sources, DMThread, thread_id)
    return await run_db(
        dm_service.list_messages,
        source.engine,
        thread_id,
        user_id,
        since=since,
        limit=cfg.dm_message_limit,
    )


@router.post("/dm-threads/{thread_id}/messages", status_code=201)
async def send_message(
    thread_id: str,
    body: MessageBody,
    sources: list[EventSource] = Depends(get_event_sources),
    cfg: PrivatePartyyConfig = Depends(get_config),
):
    source = await run_db(source_for, sources, DMThread, thread_id)
    result = await run_db(
        dm_service.try_send,
        source.engine,
        thread_id,
        body.senderId,
        body.senderName,
        body.senderAvatar,
        body.content,
        limit=cfg.dm_message_limit,
    )
    return result.to_dict()
