"""
privatepartyy.errors — Error Taxonomy
======================================

Every failure a handler can report maps onto one of these classes.  Each
carries the HTTP status it should surface as and an optional ``details``
payload; :mod:`privatepartyy.api.main` turns them into the JSON body
``{"error": message, "details": ...}``.
"""

from __future__ import annotations

from typing import Any


class PrivatePartyyError(Exception):
    """Base error with a user-safe message and optional details."""

    status_code = 500

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(PrivatePartyyError):
    """Malformed or missing input.  ``details`` lists every violated rule."""

    status_code = 400


class UnauthorizedError(PrivatePartyyError):
    status_code = 401


class ForbiddenError(PrivatePartyyError):
    status_code = 403


class NotFoundError(PrivatePartyyError):
    status_code = 404


class ConflictError(PrivatePartyyError):
    status_code = 409


class RateLimitError(PrivatePartyyError):
    """Quota exceeded; ``details`` carries ``limit`` and ``remaining``."""

    status_code = 429

    def __init__(
        self, message: str, details: Any = None, retry_after: int | None = None
    ) -> None:
        super().__init__(message, details)
        self.retry_after = retry_after


class UpstreamError(PrivatePartyyError):
    """The relational store or object store failed."""

    status_code = 500


# ---------------------------------------------------------------------------
# Domain-specific errors
# ---------------------------------------------------------------------------
class InvalidQRFormatError(ValidationError):
    def __init__(self, raw: str) -> None:
        super().__init__("Invalid QR code format")
        self.raw = raw


class ThreadNotFoundError(NotFoundError):
    def __init__(self, thread_id: str) -> None:
        super().__init__("Thread not found")
        self.thread_id = thread_id


class NotParticipantError(ForbiddenError):
    def __init__(self, thread_id: str, user_id: str) -> None:
        super().__init__("You are not a participant in this thread")
        self.thread_id = thread_id
        self.user_id = user_id


class MessageLimitReachedError(RateLimitError):
    def __init__(self, limit: int, count: int) -> None:
        super().__init__(
            "Message limit reached",
            details={
                "message": (
                    f"You've reached the {limit} message limit for this "
                    "conversation. Exchange contact info to continue chatting!"
                ),
                "limit": limit,
                "count": count,
                "remaining": 0,
            },
        )
        self.limit = limit
        self.count = count


class UploadError(UpstreamError):
    """Base for failures of the storage + database upload sequence."""


class StorageWriteError(UploadError):
    def __init__(self, reason: str) -> None:
        super().__init__("Failed to store file", details=reason)
        self.reason = reason


class RecordWriteError(UploadError):
    def __init__(self, reason: str) -> None:
        super().__init__("Failed to save post", details=reason)
        self.reason = reason
