"""
privatepartyy.services.resolver — Event Identifier Resolution
==============================================================

Every event-scoped URL carries either the event UUID or its opaque join
token.  :func:`resolve_event` turns that path segment into the canonical
event id.

Events can live in more than one store while a data migration is in
flight.  Stores are modelled as an **ordered list** of
:class:`EventSource`; each is tried in priority order, the first match
wins and the result is tagged with the source it came from.  Results are
never merged across sources.  The default wiring has a single ``primary``
source.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from privatepartyy.constants import looks_like_uuid
from privatepartyy.database.models import Base, Event
from privatepartyy.errors import NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EventSource:
    name: str
    engine: Engine


@dataclass(frozen=True, slots=True)
class ResolvedEvent:
    event_id: str
    source: EventSource

    @property
    def engine(self) -> Engine:
        return self.source.engine


def _lookup(engine: Engine, identifier: str, by_token: bool) -> str | None:
    column = Event.token if by_token else Event.id
    with Session(engine) as session:
        return session.scalar(select(Event.id).where(column == identifier))


def resolve_event(sources: list[EventSource], identifier_or_token: str) -> ResolvedEvent | None:
    """Resolve a UUID or join token to the event id, or ``None``.

    UUID-shaped input is looked up by id (so a stale or foreign UUID still
    resolves to ``None``); anything else is looked up by join token.
    """
    if not identifier_or_token:
        return None

    by_token = not looks_like_uuid(identifier_or_token)
    identifier = identifier_or_token if by_token else identifier_or_token.lower()

    for source in sources:
        event_id = _lookup(source.engine, identifier, by_token)
        if event_id is not None:
            logger.debug(
                "Resolved %s %r → %s (source=%s)",
                "token" if by_token else "id", identifier_or_token, event_id, source.name,
            )
            return ResolvedEvent(event_id=event_id, source=source)

    return None


def require_event(sources: list[EventSource], identifier_or_token: str) -> ResolvedEvent:
    """Like :func:`resolve_event` but raises :class:`NotFoundError`."""
    resolved = resolve_event(sources, identifier_or_token)
    if resolved is None:
        raise NotFoundError("Event not found")
    return resolved


def source_for(sources: list[EventSource], model: type[Base], record_id: str | None) -> EventSource:
    """Return the first source holding the *model* row with primary key *record_id*.

    Threads, posts and events live in the same store as the event they
    belong to, so follow-up calls keyed by their id have to find that
    store again.  When no source has the row the first source is returned
    and the service reports the miss with its own not-found error.
    """
    if record_id:
        for source in sources:
            with Session(source.engine) as session:
                if session.get(model, record_id) is not None:
                    return source
    return sources[0]
