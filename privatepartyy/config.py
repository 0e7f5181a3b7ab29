"""
privatepartyy.config — YAML Configuration Loader
=================================================

Reads ``config.yaml`` for **infrastructure-only** settings (public base URL,
storage backend, upload throttle, DM cap, retention windows).  Secrets
(database URLs, signing secret, cleanup keys) stay in the environment and
are loaded through ``.env``.

Usage::

    from privatepartyy.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.base_url)          # "http://localhost:3000"
    print(cfg.dm_message_limit)  # 10
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class PrivatePartyyConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    app_name: str
    base_url: str  # Public frontend URL encoded into QR codes

    # Object storage
    storage_backend: str  # "local" or "http"
    storage_bucket: str
    storage_dir: str = "uploads"
    signed_url_ttl_seconds: int = 3600

    # Throttles and caps
    upload_rate_limit: int = 10
    upload_rate_window_seconds: int = 60
    dm_message_limit: int = 10

    # Retention
    post_max_age_hours: int = 12
    dm_cleanup_grace_days: int = 1


_STORAGE_BACKENDS = frozenset({"local", "http"})


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> PrivatePartyyConfig:
    """Read *path* and return a :class:`PrivatePartyyConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    ValueError
        If ``storage_backend`` names an unknown backend.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    backend = str(raw.get("storage_backend", "local")).lower()
    if backend not in _STORAGE_BACKENDS:
        raise ValueError(
            f"Unknown storage_backend {backend!r}; "
            f"expected one of {', '.join(sorted(_STORAGE_BACKENDS))}"
        )

    return PrivatePartyyConfig(
        app_name=raw["app_name"],
        base_url=str(raw["base_url"]).rstrip("/"),
        storage_backend=backend,
        storage_bucket=raw["storage_bucket"],
        storage_dir=raw.get("storage_dir", "uploads"),
        signed_url_ttl_seconds=int(raw.get("signed_url_ttl_seconds", 3600)),
        upload_rate_limit=int(raw.get("upload_rate_limit", 10)),
        upload_rate_window_seconds=int(raw.get("upload_rate_window_seconds", 60)),
        dm_message_limit=int(raw.get("dm_message_limit", 10)),
        post_max_age_hours=int(raw.get("post_max_age_hours", 12)),
        dm_cleanup_grace_days=int(raw.get("dm_cleanup_grace_days", 1)),
    )
