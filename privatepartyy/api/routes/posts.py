"""
privatepartyy.api.routes.posts — Event feed & photo uploads
============================================================
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, File, Form, Query, Request, UploadFile

from privatepartyy.api.deps import enforce_upload_limit, get_event_sources, get_rate_limiter, get_storage
from privatepartyy.constants import MAX_BATCH_UPLOADS, MAX_FILE_SIZE
from privatepartyy.database.engine import run_db
from privatepartyy.engine.rate_limit import FixedWindowRateLimiter
from privatepartyy.engine.validation import validate_upload_file
from privatepartyy.errors import ValidationError
from privatepartyy.services import post_service
from privatepartyy.services.resolver import EventSource, require_event
from privatepartyy.services.storage import StorageBackend
from privatepartyy.services.upload_service import IncomingFile, UploadOrchestrator

router = APIRouter(tags=["posts"])
logger = logging.getLogger(__name__)


@router.get("/events/{id_or_token}/posts")
async def list_posts(
    id_or_token: str,
    user_id: str | None = Query(None, alias="userId"),
    sources: list[EventSource] = Depends(get_event_sources),
):
    """Newest-first feed; ``?userId`` fills in ``isLiked``."""
    resolved = await run_db(require_event, sources, id_or_token)
    posts = await run_db(post_service.list_posts, resolved.engine, resolved.event_id, user_id)
    return {"posts": posts}


@router.post("/events/{id_or_token}/posts", status_code=201)
async def create_post(
    id_or_token: str,
    body: dict[str, Any] = Body(...),
    sources: list[EventSource] = Depends(get_event_sources),
):
    resolved = await run_db(require_event, sources, id_or_token)
    post = await run_db(post_service.create_post, resolved.engine, resolved.event_id, body)
    return {"postId": post["id"], "post": post}


@router.post("/events/{id_or_token}/photos", status_code=201)
async def upload_photos(
    id_or_token: str,
    request: Request,
    files: list[UploadFile] = File(...),
    author_id: str | None = Form(None, alias="authorId"),
    author_name: str | None = Form(None, alias="authorName"),
    author_avatar: str | None = Form(None, alias="authorAvatar"),
    caption: str | None = Form(None),
    sources: list[EventSource] = Depends(get_event_sources),
    storage: StorageBackend = Depends(get_storage),
    limiter: FixedWindowRateLimiter = Depends(get_rate_limiter),
):
    """Upload one or more photos and create the post that shows them."""
    enforce_upload_limit(limiter, request, author_id)

    if len(files) > MAX_BATCH_UPLOADS:
        raise ValidationError(f"Maximum {MAX_BATCH_UPLOADS} files per post")

    incoming: list[IncomingFile] = []
    errors: list[str] = []
    for upload in files:
        content = await upload.read(MAX_FILE_SIZE + 1)
        name = upload.filename or "upload.jpg"
        problems = validate_upload_file(
            {"fileName": name, "fileType": upload.content_type, "fileSize": len(content)}
        )
        errors.extend(f"{name}: {problem}" for problem in problems)
        incoming.append(IncomingFile(filename=name, content=content, content_type=upload.content_type))
    if errors:
        raise ValidationError("Validation failed", details=errors)

    resolved = await run_db(require_event, sources, id_or_token)
    recorder = post_service.make_photo_recorder(
        resolved.engine,
        resolved.event_id,
        author_id=author_id,
        author_name=author_name,
        author_avatar=author_avatar,
        caption=caption,
    )
    result = await UploadOrchestrator(storage, recorder).upload_and_record(
        incoming, resolved.event_id
    )
    return {
        "postId": result.record["id"],
        "post": result.record,
        "storagePaths": result.storage_paths,
    }
