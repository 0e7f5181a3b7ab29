"""
privatepartyy.services.upload_service — Photo Uploads
======================================================

Two ways a photo reaches the object store:

1. **Direct multipart upload** through :class:`UploadOrchestrator`, which
   writes the bytes to storage and then records the post row.  Storage and
   the relational store cannot share a transaction, so the orchestrator
   compensates instead:

   * storage write fails → nothing is recorded, objects already written by
     this call are removed, :class:`StorageWriteError` is raised;
   * recorder fails (or returns nothing) → every object written by this
     call is removed and :class:`RecordWriteError` is raised.  If that
     removal itself fails it is logged and swallowed; the caller always
     sees the database error.

2. **Signed upload URLs** (:func:`prepare_signed_upload`): the client asks
   for a short-lived URL and PUTs the bytes to storage itself.  Each
   request is journalled in ``upload_logs`` on a best-effort basis.

A crash between the storage write and the recorder leaves an orphaned
object; there is no durable outbox.
"""

from __future__ import annotations

import logging
import mimetypes
import secrets
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Generic, TypeVar

from sqlalchemy import Engine, select
from sqlalchemy.exc import SQLAlchemyError

from privatepartyy.constants import MAX_BATCH_UPLOADS
from privatepartyy.database.engine import get_session, run_db
from privatepartyy.database.models import Event, UploadLog
from privatepartyy.engine.validation import ensure_valid, validate_upload_request
from privatepartyy.errors import (
    ForbiddenError,
    NotFoundError,
    PrivatePartyyError,
    RecordWriteError,
    StorageWriteError,
    UploadError,
    ValidationError,
)
from privatepartyy.services.resolver import EventSource, require_event
from privatepartyy.services.storage import StorageBackend, StorageBackendError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_EXTENSION_OVERRIDES = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/svg+xml": "svg",
}


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class IncomingFile:
    """One file of a multipart upload, already read into memory."""
    filename: str
    content: bytes
    content_type: str | None = None


@dataclass(frozen=True, slots=True)
class StoredObject:
    path: str
    public_url: str
    filename: str
    content_type: str | None = None


@dataclass(slots=True)
class UploadResult(Generic[T]):
    record: T
    storage_paths: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class SignedUpload:
    upload_url: str
    storage_path: str
    public_url: str
    expires_in: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "uploadUrl": self.upload_url,
            "storagePath": self.storage_path,
            "publicUrl": self.public_url,
            "expiresIn": self.expires_in,
        }


# ---------------------------------------------------------------------------
# Storage paths
# ---------------------------------------------------------------------------
def file_extension(filename: str, content_type: str | None = None) -> str:
    suffix = PurePosixPath(filename).suffix.lower().lstrip(".")
    if suffix:
        return suffix
    if content_type:
        if content_type in _EXTENSION_OVERRIDES:
            return _EXTENSION_OVERRIDES[content_type]
        guessed = mimetypes.guess_extension(content_type)
        if guessed:
            return guessed.lstrip(".")
    return "bin"


def build_storage_path(
    event_id: str,
    filename: str,
    *,
    upload_type: str = "post",
    user_id: str | None = None,
    content_type: str | None = None,
) -> str:
    """Collision-resistant object key for an upload.

    ==========  ============================================
    post        ``events/{id}/posts/{rand}_{ms}.{ext}``
    event       ``events/{id}/cover/{rand}_{ms}.{ext}``
    profile     ``events/{id}/profiles/{user}/{rand}_{ms}.{ext}``
    ==========  ============================================
    """
    name = f"{secrets.token_hex(8)}_{int(time.time() * 1000)}.{file_extension(filename, content_type)}"
    if upload_type == "event":
        return f"events/{event_id}/cover/{name}"
    if upload_type == "profile":
        return f"events/{event_id}/profiles/{user_id or 'anonymous'}/{name}"
    return f"events/{event_id}/posts/{name}"


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------
class UploadOrchestrator(Generic[T]):
    """Write files to storage, then record them; compensate on failure.

    *recorder* is a **synchronous** callable taking the list of
    :class:`StoredObject` written by this call and returning the created
    record (or ``None`` when nothing was written).  It runs on the DB
    thread pool via :func:`run_db`.
    """

    def __init__(
        self,
        storage: StorageBackend,
        recorder: Callable[[list[StoredObject]], T | None],
    ) -> None:
        self.storage = storage
        self.recorder = recorder

    async def upload_and_record(
        self, files: list[IncomingFile], event_id: str
    ) -> UploadResult[T]:
        if not files:
            raise ValidationError("At least one file is required")

        stored: list[StoredObject] = []
        for incoming in files:
            path = build_storage_path(
                event_id, incoming.filename, content_type=incoming.content_type
            )
            try:
                await self.storage.upload(path, incoming.content, incoming.content_type)
            except StorageBackendError as exc:
                logger.warning("Storage write failed for %s: %s", path, exc)
                await self._discard([s.path for s in stored])
                raise StorageWriteError(str(exc)) from exc
            stored.append(
                StoredObject(
                    path=path,
                    public_url=self.storage.public_url(path),
                    filename=incoming.filename,
                    content_type=incoming.content_type,
                )
            )

        paths = [s.path for s in stored]
        try:
            record = await run_db(self.recorder, stored)
        except Exception as exc:  # noqa: BLE001 - any recorder failure is compensated
            logger.warning("Recording upload for event %s failed: %s", event_id, exc)
            await self._discard(paths)
            raise RecordWriteError(str(exc)) from exc

        if record is None:
            logger.warning("Recorder for event %s returned no row", event_id)
            await self._discard(paths)
            raise RecordWriteError("No record was created")

        logger.info("Stored %d object(s) for event %s", len(paths), event_id)
        return UploadResult(record=record, storage_paths=paths)

    async def _discard(self, paths: list[str]) -> None:
        if not paths:
            return
        try:
            await self.storage.remove(paths)
        except StorageBackendError as exc:
            logger.error("Compensating delete failed, orphaned objects %s: %s", paths, exc)
        else:
            logger.info("Removed %d orphaned object(s): %s", len(paths), ", ".join(paths))


# ---------------------------------------------------------------------------
# Signed uploads
# ---------------------------------------------------------------------------
def verify_event_token(engine: Engine, event_id: str, token: str | None) -> None:
    """Raise unless *token* is the join token of *event_id*."""
    with get_session(engine) as session:
        stored = session.scalar(select(Event.token).where(Event.id == event_id))
    if stored is None:
        raise NotFoundError("Event not found")
    if not token or not secrets.compare_digest(stored, token):
        raise ForbiddenError("Invalid event token")


def log_upload_request(
    engine: Engine,
    *,
    event_id: str,
    storage_path: str,
    file_type: str,
    file_size: int | None,
    upload_type: str,
    user_id: str | None,
) -> None:
    with get_session(engine) as session:
        session.add(
            UploadLog(
                event_id=event_id,
                storage_path=storage_path,
                file_type=file_type,
                file_size=file_size,
                upload_type=upload_type,
                user_id=user_id,
            )
        )


async def prepare_signed_upload(
    sources: list[EventSource],
    storage: StorageBackend,
    data: Mapping[str, Any],
    *,
    expires_in: int = 3600,
) -> SignedUpload:
    """Validate an upload request and hand back a signed upload URL."""
    ensure_valid(validate_upload_request(data))

    resolved = await run_db(require_event, sources, data["eventId"])
    await run_db(verify_event_token, resolved.engine, resolved.event_id, data["eventToken"])

    upload_type = data.get("uploadType") or "post"
    user_id = data.get("userId")
    path = build_storage_path(
        resolved.event_id,
        data["fileName"],
        upload_type=upload_type,
        user_id=user_id,
        content_type=data["fileType"],
    )

    try:
        upload_url = await storage.create_signed_upload_url(path, expires_in)
    except StorageBackendError as exc:
        logger.error("Signed URL creation failed for %s: %s", path, exc)
        raise UploadError("Failed to create upload URL", details=str(exc)) from exc

    try:
        await run_db(
            log_upload_request,
            resolved.engine,
            event_id=resolved.event_id,
            storage_path=path,
            file_type=data["fileType"],
            file_size=data.get("fileSize"),
            upload_type=upload_type,
            user_id=user_id,
        )
    except SQLAlchemyError as exc:
        logger.warning("Could not journal upload request for %s: %s", path, exc)

    return SignedUpload(
        upload_url=upload_url,
        storage_path=path,
        public_url=storage.public_url(path),
        expires_in=expires_in,
    )


async def prepare_signed_uploads_batch(
    sources: list[EventSource],
    storage: StorageBackend,
    items: list[Mapping[str, Any]],
    *,
    expires_in: int = 3600,
) -> list[dict[str, Any]]:
    """Per-item signed uploads; one bad item never fails the others."""
    if not isinstance(items, list) or not items:
        raise ValidationError("uploads must be a non-empty array")
    if len(items) > MAX_BATCH_UPLOADS:
        raise ValidationError(f"Maximum {MAX_BATCH_UPLOADS} files per batch")

    results: list[dict[str, Any]] = []
    for item in items:
        try:
            signed = await prepare_signed_upload(sources, storage, item, expires_in=expires_in)
        except PrivatePartyyError as exc:
            results.append({"success": False, "fileName": item.get("fileName"), **exc.to_dict()})
        else:
            results.append({"success": True, "fileName": item.get("fileName"), **signed.to_dict()})
    return results
