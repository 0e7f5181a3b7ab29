"""
privatepartyy.api.routes.social — Likes & comments on posts
============================================================

Posts live in the same store as their event, so every route first finds
the source holding ``post_id``.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel
from sqlalchemy import Engine

from privatepartyy.api.deps import get_event_sources
from privatepartyy.database.engine import run_db
from privatepartyy.database.models import Post
from privatepartyy.services import social_service
from privatepartyy.services.resolver import EventSource, source_for

router = APIRouter(tags=["social"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class LikeBody(BaseModel):
    userId: str | None = None
    userName: str | None = None
    userAvatar: str | None = None


async def _post_engine(post_id: str, sources: list[EventSource]) -> Engine:
    source = await run_db(source_for, sources, Post, post_id)
    return source.engine


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------
@router.get("/posts/{post_id}/likes")
async def list_likes(post_id: str, sources: list[EventSource] = Depends(get_event_sources)):
    engine = await _post_engine(post_id, sources)
    return {"likes": await run_db(social_service.list_likes, engine, post_id)}


@router.post("/posts/{post_id}/likes", status_code=201)
async def add_like(
    post_id: str, body: LikeBody, sources: list[EventSource] = Depends(get_event_sources)
):
    engine = await _post_engine(post_id, sources)
    like = await run_db(
        social_service.add_like, engine, post_id, body.userId, body.userName, body.userAvatar
    )
    return {"like": like}


@router.delete("/posts/{post_id}/likes")
async def remove_like(
    post_id: str, body: LikeBody, sources: list[EventSource] = Depends(get_event_sources)
):
    engine = await _post_engine(post_id, sources)
    await run_db(social_service.remove_like, engine, post_id, body.userId)
    return {"success": True}


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------
@router.get("/posts/{post_id}/comments")
async def list_comments(post_id: str, sources: list[EventSource] = Depends(get_event_sources)):
    engine = await _post_engine(post_id, sources)
    return {"comments": await run_db(social_service.list_comments, engine, post_id)}


@router.post("/posts/{post_id}/comments", status_code=201)
async def add_comment(
    post_id: str,
    body: dict[str, Any] = Body(...),
    sources: list[EventSource] = Depends(get_event_sources),
):
    engine = await _post_engine(post_id, sources)
    return {"comment": await run_db(social_service.add_comment, engine, post_id, body)}


@router.put("/posts/{post_id}/comments")
async def update_comment(
    post_id: str,
    body: dict[str, Any] = Body(...),
    sources: list[EventSource] = Depends(get_event_sources),
):
    """Edit a comment; only its author may do so."""
    engine = await _post_engine(post_id, sources)
    return {"comment": await run_db(social_service.update_comment, engine, post_id, body)}


@router.delete("/posts/{post_id}/comments")
async def delete_comment(
    post_id: str,
    body: dict[str, Any] = Body(...),
    sources: list[EventSource] = Depends(get_event_sources),
):
    engine = await _post_engine(post_id, sources)
    await run_db(social_service.delete_comment, engine, post_id, body)
    return {"success": True}
