"""
privatepartyy.engine.validation — Collect-All Request Validators
=================================================================

Each validator evaluates **every** rule and returns the full list of
violations (empty list = valid), so a client can show all problems at once
instead of fixing them one round-trip at a time.

Validators work on the raw camelCase request mapping and never touch the
database or storage.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlparse

from privatepartyy.constants import (
    ALLOWED_IMAGE_TYPES,
    MAX_FILE_NAME_LENGTH,
    MAX_FILE_SIZE,
    UPLOAD_TYPES,
)
from privatepartyy.errors import ValidationError

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MAX_TITLE_LENGTH = 200
MIN_TITLE_LENGTH = 3
MAX_DESCRIPTION_LENGTH = 2000
MAX_LOCATION_LENGTH = 500
MAX_ATTENDEES = 10_000
MAX_TAGS = 10
MAX_TAG_LENGTH = 50


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------
def validate_upload_file(data: Mapping[str, Any]) -> list[str]:
    """Check the file half of an upload: ``fileName``, ``fileType``, ``fileSize``.

    Shared by signed-upload requests and multipart photo uploads.
    """
    errors: list[str] = []

    if not _non_empty_str(data.get("fileName")):
        errors.append("File name is required")
    if not _non_empty_str(data.get("fileType")):
        errors.append("File type is required")

    if data.get("fileType") not in ALLOWED_IMAGE_TYPES:
        errors.append(
            f"Invalid file type. Allowed types: {', '.join(ALLOWED_IMAGE_TYPES)}"
        )

    file_size = data.get("fileSize")
    if file_size is not None:
        if not _is_number(file_size) or file_size <= 0:
            errors.append("File size must be a positive number")
        elif file_size > MAX_FILE_SIZE:
            errors.append(
                "File size exceeds maximum allowed size of "
                f"{MAX_FILE_SIZE // 1024 // 1024}MB"
            )

    file_name = data.get("fileName")
    if isinstance(file_name, str):
        if len(file_name) > MAX_FILE_NAME_LENGTH:
            errors.append(
                f"File name must be at most {MAX_FILE_NAME_LENGTH} characters"
            )
        if ".." in file_name or "/" in file_name or "\\" in file_name:
            errors.append("Invalid file name format: path traversal is not allowed")

    return errors


def validate_upload_request(data: Mapping[str, Any]) -> list[str]:
    """Check a signed-upload request.

    Rules (all evaluated):
      - ``eventId``, ``eventToken``, ``fileName``, ``fileType`` present
      - ``fileType`` in the image allow-list
      - ``fileSize`` (optional) positive and at most 10 MiB
      - ``fileName`` at most 255 characters
      - ``fileName`` free of ``..``, ``/`` and ``\\``
      - ``uploadType`` (optional) one of post / event / profile
    """
    errors: list[str] = []

    if not _non_empty_str(data.get("eventId")):
        errors.append("Event ID is required")
    if not _non_empty_str(data.get("eventToken")):
        errors.append("Event token is required")

    errors.extend(validate_upload_file(data))

    upload_type = data.get("uploadType")
    if upload_type is not None and upload_type not in UPLOAD_TYPES:
        errors.append("Invalid upload type. Must be: post, event, or profile")

    return errors


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
def _is_valid_date(value: Any) -> bool:
    if not isinstance(value, str) or not _DATE_RE.match(value):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def _is_valid_time(value: Any) -> bool:
    return isinstance(value, str) and bool(_TIME_RE.match(value))


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and bool(_EMAIL_RE.match(value))


def _is_valid_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value)
    return bool(parsed.scheme and parsed.netloc)


def validate_event_data(
    data: Mapping[str, Any],
    *,
    require_date_and_time: bool = True,
    now: datetime | None = None,
) -> list[str]:
    """Check an event create/update payload (``title`` or ``name`` accepted)."""
    errors: list[str] = []

    title = data.get("title") or data.get("name")
    if not isinstance(title, str) or len(title.strip()) < MIN_TITLE_LENGTH:
        errors.append(f"Title/Name must be at least {MIN_TITLE_LENGTH} characters long")
    elif len(title) > MAX_TITLE_LENGTH:
        errors.append(f"Title/Name must be less than {MAX_TITLE_LENGTH} characters")

    if require_date_and_time:
        date_ok = _is_valid_date(data.get("date"))
        time_ok = _is_valid_time(data.get("time"))
        if not date_ok:
            errors.append("Invalid date format (YYYY-MM-DD required)")
        if not time_ok:
            errors.append("Invalid time format (HH:MM required)")
        if date_ok and time_ok:
            starts = datetime.strptime(
                f"{data['date']} {data['time']}", "%Y-%m-%d %H:%M"
            ).replace(tzinfo=UTC)
            if starts < (now or datetime.now(UTC)):
                errors.append("Event date must be in the future")
    else:
        if data.get("date") is not None and not _is_valid_date(data.get("date")):
            errors.append("Invalid date format (YYYY-MM-DD required)")
        if data.get("time") is not None and not _is_valid_time(data.get("time")):
            errors.append("Invalid time format (HH:MM required)")

    host_id = data.get("hostId")
    if host_id is not None and not isinstance(host_id, str):
        errors.append("Host ID must be a string")

    description = data.get("description")
    if isinstance(description, str) and len(description) > MAX_DESCRIPTION_LENGTH:
        errors.append(f"Description must be less than {MAX_DESCRIPTION_LENGTH} characters")

    location = data.get("location")
    if isinstance(location, str) and len(location) > MAX_LOCATION_LENGTH:
        errors.append(f"Location must be less than {MAX_LOCATION_LENGTH} characters")

    max_attendees = data.get("maxAttendees")
    if max_attendees is not None and (
        not isinstance(max_attendees, int)
        or isinstance(max_attendees, bool)
        or not 1 <= max_attendees <= MAX_ATTENDEES
    ):
        errors.append(f"Max attendees must be between 1 and {MAX_ATTENDEES}")

    tags = data.get("tags")
    if isinstance(tags, list):
        if len(tags) > MAX_TAGS:
            errors.append(f"Maximum {MAX_TAGS} tags allowed")
        if any(not isinstance(t, str) or len(t) > MAX_TAG_LENGTH for t in tags):
            errors.append(f"Each tag must be a string with max {MAX_TAG_LENGTH} characters")

    host_email = data.get("hostEmail")
    if host_email and not is_valid_email(host_email):
        errors.append("Invalid host email format")

    image_url = data.get("imageUrl")
    if image_url and not _is_valid_url(image_url):
        errors.append("Invalid image URL format")

    return errors


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------
def validate_profile_data(data: Mapping[str, Any]) -> list[str]:
    errors: list[str] = []
    for key in ("id", "email", "name"):
        if not _non_empty_str(data.get(key)):
            errors.append(f"{key} is required")
    email = data.get("email")
    if _non_empty_str(email) and not is_valid_email(email):
        errors.append("Invalid email format")
    return errors


def ensure_valid(errors: list[str]) -> None:
    """Raise :class:`ValidationError` carrying *errors* if there are any."""
    if errors:
        raise ValidationError("Validation failed", details=errors)
