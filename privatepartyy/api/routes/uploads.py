"""
privatepartyy.api.routes.uploads — Signed upload URLs
======================================================

``POST /uploads`` hands out a short-lived URL the client PUTs the photo
to.  With the local storage backend that URL points back at
``PUT /storage/upload/{path}?token=…`` on this API.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Request, Response

from privatepartyy.api.deps import (
    enforce_upload_limit,
    get_config,
    get_event_sources,
    get_rate_limiter,
    get_storage,
)
from privatepartyy.config import PrivatePartyyConfig
from privatepartyy.constants import MAX_FILE_SIZE
from privatepartyy.engine.rate_limit import FixedWindowRateLimiter
from privatepartyy.errors import (
    ForbiddenError,
    NotFoundError,
    StorageWriteError,
    UnauthorizedError,
    ValidationError,
)
from privatepartyy.services.resolver import EventSource
from privatepartyy.services.storage import LocalStorage, StorageBackend, StorageBackendError
from privatepartyy.services.upload_service import (
    prepare_signed_upload,
    prepare_signed_uploads_batch,
)

router = APIRouter(tags=["uploads"])
logger = logging.getLogger(__name__)

_NO_STORE = {"Cache-Control": "no-store, max-age=0"}


@router.post("/uploads")
async def request_upload(
    request: Request,
    response: Response,
    body: dict[str, Any] = Body(...),
    sources: list[EventSource] = Depends(get_event_sources),
    storage: StorageBackend = Depends(get_storage),
    limiter: FixedWindowRateLimiter = Depends(get_rate_limiter),
    cfg: PrivatePartyyConfig = Depends(get_config),
):
    enforce_upload_limit(limiter, request, body.get("userId"))
    signed = await prepare_signed_upload(
        sources, storage, body, expires_in=cfg.signed_url_ttl_seconds
    )
    response.headers.update(_NO_STORE)
    return {"success": True, **signed.to_dict()}


@router.post("/uploads/batch")
async def request_upload_batch(
    request: Request,
    response: Response,
    body: dict[str, Any] = Body(...),
    sources: list[EventSource] = Depends(get_event_sources),
    storage: StorageBackend = Depends(get_storage),
    limiter: FixedWindowRateLimiter = Depends(get_rate_limiter),
    cfg: PrivatePartyyConfig = Depends(get_config),
):
    """Signed URLs for up to 10 files; per-item success or error."""
    enforce_upload_limit(limiter, request, body.get("userId"))
    results = await prepare_signed_uploads_batch(
        sources, storage, body.get("uploads"), expires_in=cfg.signed_url_ttl_seconds
    )
    response.headers.update(_NO_STORE)
    succeeded = sum(1 for r in results if r["success"])
    return {
        "results": results,
        "succeeded": succeeded,
        "failed": len(results) - succeeded,
    }


@router.put("/storage/upload/{path:path}", status_code=201)
async def put_object(
    path: str,
    request: Request,
    token: str | None = None,
    storage: StorageBackend = Depends(get_storage),
):
    """Target of locally signed upload URLs."""
    if not isinstance(storage, LocalStorage):
        raise NotFoundError("Not found")
    if not token:
        raise UnauthorizedError("Upload token is required")
    if not storage.verify_upload_token(token, path):
        raise ForbiddenError("Invalid or expired upload token")

    content = await request.body()
    if not content:
        raise ValidationError("Request body is empty")
    if len(content) > MAX_FILE_SIZE:
        raise ValidationError(
            f"File size exceeds maximum allowed size of {MAX_FILE_SIZE // 1024 // 1024}MB"
        )

    try:
        await storage.upload(path, content, request.headers.get("content-type"))
    except StorageBackendError as exc:
        raise StorageWriteError(str(exc)) from exc

    logger.info("Stored %s (%d bytes) via signed URL", path, len(content))
    return {"path": path, "publicUrl": storage.public_url(path)}
