"""
privatepartyy.api.deps — FastAPI dependency injection
======================================================

Engines, event sources, storage and the upload limiter are built here,
once per process, and handed to routes through ``Depends``.  Tests swap
any of them with ``app.dependency_overrides``.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy import Engine

from privatepartyy.config import PrivatePartyyConfig, load_config
from privatepartyy.database.engine import create_db_engine
from privatepartyy.engine.rate_limit import FixedWindowRateLimiter
from privatepartyy.errors import RateLimitError
from privatepartyy.services.resolver import EventSource
from privatepartyy.services.storage import HttpObjectStorage, LocalStorage, StorageBackend

_WEAK_SECRETS = frozenset({
    "privatepartyy-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32


def _load_signing_secret() -> str:
    """Load and validate STORAGE_SIGNING_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("STORAGE_SIGNING_SECRET", "")
    if not secret:
        raise RuntimeError(
            "STORAGE_SIGNING_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"STORAGE_SIGNING_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"STORAGE_SIGNING_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


STORAGE_SIGNING_SECRET: str = _load_signing_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> PrivatePartyyConfig:
    return load_config(os.getenv("PRIVATEPARTYY_CONFIG", "config.yaml"))


@lru_cache(maxsize=1)
def _legacy_engine() -> Engine | None:
    if not os.getenv("LEGACY_DATABASE_URL"):
        return None
    return create_db_engine(env_var="LEGACY_DATABASE_URL")


def get_event_sources(
    engine: Annotated[Engine, Depends(get_engine)],
) -> list[EventSource]:
    """Ordered event stores: ``primary`` first, then ``legacy`` if configured."""
    sources = [EventSource("primary", engine)]
    legacy = _legacy_engine()
    if legacy is not None:
        sources.append(EventSource("legacy", legacy))
    return sources


@lru_cache(maxsize=1)
def _build_storage() -> StorageBackend:
    cfg = get_config()
    if cfg.storage_backend == "http":
        base_url = os.getenv("STORAGE_API_URL", "")
        service_key = os.getenv("STORAGE_SERVICE_KEY", "")
        if not base_url or not service_key:
            raise RuntimeError(
                "storage_backend is 'http' but STORAGE_API_URL / STORAGE_SERVICE_KEY are not set."
            )
        return HttpObjectStorage(base_url, service_key, cfg.storage_bucket)
    return LocalStorage(cfg.storage_dir, signing_secret=STORAGE_SIGNING_SECRET)


def get_storage() -> StorageBackend:
    return _build_storage()


@lru_cache(maxsize=1)
def get_rate_limiter() -> FixedWindowRateLimiter:
    cfg = get_config()
    return FixedWindowRateLimiter(cfg.upload_rate_limit, cfg.upload_rate_window_seconds)


def enforce_upload_limit(
    limiter: FixedWindowRateLimiter, request: Request, user_id: str | None
) -> None:
    """Count one upload for *user_id* (or the client address) or raise 429."""
    key = user_id or (request.client.host if request.client else "anonymous")
    decision = limiter.check_and_record(key)
    if not decision.allowed:
        raise RateLimitError(
            "Too many uploads. Please try again later.",
            details={
                "limit": decision.limit,
                "remaining": decision.remaining,
                "retryAfter": decision.retry_after,
            },
            retry_after=decision.retry_after,
        )
