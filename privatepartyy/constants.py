"""
privatepartyy.constants — Shared Constants & Helpers
=====================================================

Single source of truth for limits, allow-lists and identifier patterns.
Import from here instead of duplicating in services and routes.
"""

from __future__ import annotations

import re

# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------
UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def looks_like_uuid(value: str) -> bool:
    """True if *value* has the canonical 8-4-4-4-12 hex shape."""
    return bool(UUID_PATTERN.match(value))


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MiB
MAX_FILE_NAME_LENGTH = 255
ALLOWED_IMAGE_TYPES: tuple[str, ...] = (
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/svg+xml",
)
UPLOAD_TYPES: tuple[str, ...] = ("post", "event", "profile")
MAX_BATCH_UPLOADS = 10

# ---------------------------------------------------------------------------
# Rate limiting (fixed window)
# ---------------------------------------------------------------------------
DEFAULT_RATE_LIMIT = 10
DEFAULT_WINDOW_SECONDS = 60

# ---------------------------------------------------------------------------
# Direct messages
# ---------------------------------------------------------------------------
DM_MESSAGE_LIMIT = 10
DM_MAX_CONTENT_LENGTH = 1000

# ---------------------------------------------------------------------------
# Presentation defaults
# ---------------------------------------------------------------------------
DEFAULT_AVATAR = "\U0001f464"  # 👤
ANONYMOUS_NAME = "Anonymous"
ANONYMOUS_HOST_NAME = "Anonymous Host"
