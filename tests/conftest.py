"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid STORAGE_SIGNING_SECRET is always set for test runs.
# This must happen before any import of privatepartyy.api.deps which
# validates the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_SIGNING_SECRET = "test-signing-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("STORAGE_SIGNING_SECRET", _TEST_SIGNING_SECRET)

import uuid  # noqa: E402
from datetime import date, timedelta  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from privatepartyy.config import PrivatePartyyConfig  # noqa: E402
from privatepartyy.database.engine import enable_sqlite_foreign_keys  # noqa: E402
from privatepartyy.database.models import Base, Event  # noqa: E402
from privatepartyy.engine.rate_limit import FixedWindowRateLimiter  # noqa: E402
from privatepartyy.services.storage import LocalStorage  # noqa: E402


def _make_engine() -> Engine:
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all PrivatePartyy tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in ``run_db``), and turns on
    foreign keys so ``ON DELETE CASCADE`` behaves as on PostgreSQL.
    """
    return _make_engine()


@pytest.fixture
def legacy_engine() -> Engine:
    """A second, independent event store."""
    return _make_engine()


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a transactional session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def storage(tmp_path) -> LocalStorage:
    store = LocalStorage(tmp_path / "objects", signing_secret=_TEST_SIGNING_SECRET)
    store.ensure_root()
    return store


@pytest.fixture
def config(tmp_path) -> PrivatePartyyConfig:
    return PrivatePartyyConfig(
        app_name="PrivatePartyy",
        base_url="https://privatepartyy.test",
        storage_backend="local",
        storage_bucket="event-photos",
        storage_dir=str(tmp_path / "objects"),
    )


@pytest.fixture
def limiter() -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(max_requests=10, window_seconds=60)


@pytest.fixture
def make_event(db_engine: Engine):
    """Factory inserting an event directly (skips the future-date check)."""

    def _make(engine: Engine | None = None, **overrides) -> Event:
        values = {
            "token": f"party-{uuid.uuid4().hex[:8]}",
            "title": "Rooftop Party",
            "description": "",
            "date": date.today() + timedelta(days=7),
            "time": "20:00",
            "host_id": "host-1",
            "host_name": "Hosty",
        }
        values.update(overrides)
        event = Event(**values)
        with Session(engine or db_engine, expire_on_commit=False) as session:
            session.add(event)
            session.commit()
        return event

    return _make


@pytest.fixture
def client(db_engine, storage, config, limiter):
    """FastAPI TestClient wired to the in-memory engine and temp storage."""
    from fastapi.testclient import TestClient

    from privatepartyy.api.deps import (
        get_config,
        get_engine,
        get_event_sources,
        get_rate_limiter,
        get_storage,
    )
    from privatepartyy.api.main import app
    from privatepartyy.services.resolver import EventSource

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_event_sources] = lambda: [EventSource("primary", db_engine)]
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_config] = lambda: config
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
