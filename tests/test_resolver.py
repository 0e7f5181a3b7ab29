"""
tests/test_resolver.py — Event Identifier Resolution
=====================================================
UUIDs resolve by id, anything else by join token; ordered sources are
tried in priority order and the result is tagged with its source.
"""

from __future__ import annotations

import uuid

import pytest

from privatepartyy.database.models import Event
from privatepartyy.errors import NotFoundError
from privatepartyy.services.resolver import EventSource, require_event, resolve_event, source_for


class TestResolveEvent:
    def test_uuid_resolves_to_itself(self, db_engine, make_event):
        event = make_event()
        resolved = resolve_event([EventSource("primary", db_engine)], event.id)
        assert resolved is not None
        assert resolved.event_id == event.id
        assert resolved.source.name == "primary"

    def test_uppercase_uuid_resolves(self, db_engine, make_event):
        event = make_event()
        resolved = resolve_event([EventSource("primary", db_engine)], event.id.upper())
        assert resolved is not None
        assert resolved.event_id == event.id

    def test_token_resolves_to_event_id(self, db_engine, make_event):
        event = make_event(token="rooftop-party-1a2b")
        resolved = resolve_event([EventSource("primary", db_engine)], "rooftop-party-1a2b")
        assert resolved is not None
        assert resolved.event_id == event.id

    def test_unknown_uuid_returns_none(self, db_engine, make_event):
        make_event()
        assert resolve_event([EventSource("primary", db_engine)], str(uuid.uuid4())) is None

    def test_unknown_token_returns_none(self, db_engine, make_event):
        make_event(token="known-token")
        assert resolve_event([EventSource("primary", db_engine)], "other-token") is None

    def test_empty_identifier_returns_none(self, db_engine):
        assert resolve_event([EventSource("primary", db_engine)], "") is None

    def test_uuid_is_not_looked_up_as_token(self, db_engine, make_event):
        """A UUID-shaped token is still treated as an id."""
        fake_id = str(uuid.uuid4())
        make_event(token=fake_id)
        assert resolve_event([EventSource("primary", db_engine)], fake_id) is None


class TestOrderedSources:
    def test_first_source_wins(self, db_engine, legacy_engine, make_event):
        make_event(token="shared-token", title="Primary copy")
        make_event(legacy_engine, token="shared-token", title="Legacy copy")
        sources = [EventSource("primary", db_engine), EventSource("legacy", legacy_engine)]

        resolved = resolve_event(sources, "shared-token")
        assert resolved.source.name == "primary"
        assert resolved.engine is db_engine

    def test_falls_through_to_later_source(self, db_engine, legacy_engine, make_event):
        legacy_event = make_event(legacy_engine, token="old-party-9f9f")
        sources = [EventSource("primary", db_engine), EventSource("legacy", legacy_engine)]

        resolved = resolve_event(sources, "old-party-9f9f")
        assert resolved.event_id == legacy_event.id
        assert resolved.source.name == "legacy"

    def test_no_source_matches(self, db_engine, legacy_engine):
        sources = [EventSource("primary", db_engine), EventSource("legacy", legacy_engine)]
        assert resolve_event(sources, "nowhere") is None


class TestRequireEvent:
    def test_raises_not_found(self, db_engine):
        with pytest.raises(NotFoundError) as exc_info:
            require_event([EventSource("primary", db_engine)], "missing")
        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Event not found"


class TestSourceFor:
    def test_finds_store_holding_the_row(self, db_engine, legacy_engine, make_event):
        legacy_event = make_event(legacy_engine)
        sources = [EventSource("primary", db_engine), EventSource("legacy", legacy_engine)]
        assert source_for(sources, Event, legacy_event.id).name == "legacy"

    def test_first_store_wins(self, db_engine, legacy_engine, make_event):
        event = make_event()
        make_event(legacy_engine, id=event.id, token="copy-token")
        sources = [EventSource("primary", db_engine), EventSource("legacy", legacy_engine)]
        assert source_for(sources, Event, event.id).name == "primary"

    @pytest.mark.parametrize("record_id", ["missing", None])
    def test_defaults_to_first_store(self, db_engine, legacy_engine, record_id):
        sources = [EventSource("primary", db_engine), EventSource("legacy", legacy_engine)]
        assert source_for(sources, Event, record_id).name == "primary"
