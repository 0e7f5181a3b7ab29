"""
PrivatePartyy — Ephemeral, QR-Gated Event Photo Sharing
========================================================
A host creates an event, attendees scan its QR code to join, and posts,
likes, comments and direct messages live inside that event until the
cleanup jobs expire them.

Package layout::

    privatepartyy/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Limits, allow-lists, identifier patterns
    ├── errors.py          # Error taxonomy → HTTP status + JSON body
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # All ORM models
    ├── engine/
    │   ├── qr.py          # QR payload parsing + rendering
    │   ├── rate_limit.py  # Fixed-window in-memory limiter
    │   └── validation.py  # Collect-all request validators
    ├── services/
    │   ├── resolver.py    # UUID-or-token → event, across ordered sources
    │   ├── storage.py     # Object storage backends (local, HTTP)
    │   ├── upload_service.py     # Signed URLs + upload orchestrator
    │   ├── event_service.py      # Events + attendees
    │   ├── post_service.py       # Event feed
    │   ├── social_service.py     # Likes + comments
    │   ├── dm_service.py         # Capped two-party DM threads
    │   ├── profile_service.py    # User profiles
    │   ├── preference_service.py # Per-event DM opt-out
    │   └── retention_service.py  # Expiry cleanup jobs
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Dependency providers
        └── routes/        # One router per resource
"""

__version__ = "0.1.0"
