"""
tests/test_dm_service.py — Capped Direct Messages
==================================================
Threads are canonical per pair; every thread takes exactly 10 messages
and refuses the 11th.
"""

from __future__ import annotations

import time

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from privatepartyy.database.models import DMMessage, DMThread
from privatepartyy.errors import (
    ForbiddenError,
    MessageLimitReachedError,
    NotParticipantError,
    ThreadNotFoundError,
    ValidationError,
)
from privatepartyy.services.dm_service import (
    canonical_pair,
    get_or_create_thread,
    list_messages,
    list_threads,
    parse_since,
    try_send,
)
from privatepartyy.services.preference_service import upsert_preferences


def _open(engine, event_id, me="bob", other="alice"):
    return get_or_create_thread(engine, event_id, {
        "currentUserId": me,
        "currentUserName": me.title(),
        "otherUserId": other,
        "otherUserName": other.title(),
    })


class TestThreads:
    def test_canonical_pair(self):
        a = ("alice", "Alice", None)
        b = ("bob", "Bob", None)
        assert canonical_pair(b, a) == (a, b)
        assert canonical_pair(a, b) == (a, b)

    def test_create_stores_participants_in_order(self, db_engine, make_event):
        event = make_event()
        thread, created = _open(db_engine, event.id, me="bob", other="alice")
        assert created is True
        assert thread["participant1Id"] == "alice"
        assert thread["participant2Id"] == "bob"
        assert thread["messageCount"] == 0

    def test_reverse_direction_returns_same_thread(self, db_engine, make_event):
        event = make_event()
        first, _ = _open(db_engine, event.id, me="bob", other="alice")
        second, created = _open(db_engine, event.id, me="alice", other="bob")
        assert created is False
        assert second["id"] == first["id"]
        with Session(db_engine) as session:
            assert session.scalar(select(func.count()).select_from(DMThread)) == 1

    def test_same_pair_in_other_event_is_separate(self, db_engine, make_event):
        one, _ = _open(db_engine, make_event().id)
        two, created = _open(db_engine, make_event().id)
        assert created is True
        assert one["id"] != two["id"]

    def test_cannot_dm_yourself(self, db_engine, make_event):
        with pytest.raises(ValidationError, match="Cannot DM yourself"):
            _open(db_engine, make_event().id, me="alice", other="alice")

    def test_missing_fields(self, db_engine, make_event):
        with pytest.raises(ValidationError, match="Missing required fields"):
            get_or_create_thread(db_engine, make_event().id, {"currentUserId": "a"})

    def test_mixed_id_types_rejected(self, db_engine, make_event):
        with pytest.raises(ValidationError, match="must be strings"):
            get_or_create_thread(db_engine, make_event().id, {
                "currentUserId": 7, "currentUserName": "Seven",
                "otherUserId": "alice", "otherUserName": "Alice",
            })

    def test_opted_out_user_blocks_new_thread(self, db_engine, make_event):
        event = make_event()
        upsert_preferences(db_engine, event.id, {"userId": "alice", "allowDMs": False})
        with pytest.raises(ForbiddenError, match="not accepting direct messages"):
            _open(db_engine, event.id, me="bob", other="alice")

    def test_opt_out_keeps_existing_thread(self, db_engine, make_event):
        event = make_event()
        thread, _ = _open(db_engine, event.id)
        upsert_preferences(db_engine, event.id, {"userId": "alice", "allowDMs": False})
        again, created = _open(db_engine, event.id)
        assert created is False
        assert again["id"] == thread["id"]

    def test_list_threads_for_participant_only(self, db_engine, make_event):
        event = make_event()
        _open(db_engine, event.id, me="alice", other="bob")
        _open(db_engine, event.id, me="carol", other="dave")
        threads = list_threads(db_engine, event.id, "alice")
        assert len(threads) == 1
        assert threads[0]["participant2Id"] == "bob"

    def test_list_threads_requires_user(self, db_engine, make_event):
        with pytest.raises(ValidationError):
            list_threads(db_engine, make_event().id, None)

    def test_most_recent_conversation_first(self, db_engine, make_event):
        event = make_event()
        quiet, _ = _open(db_engine, event.id, me="alice", other="bob")
        busy, _ = _open(db_engine, event.id, me="alice", other="carol")
        try_send(db_engine, busy["id"], "alice", "Alice", None, "hi")
        threads = list_threads(db_engine, event.id, "alice")
        assert [t["id"] for t in threads] == [busy["id"], quiet["id"]]


class TestMessageCap:
    def test_ten_messages_then_limit(self, db_engine, make_event):
        thread, _ = _open(db_engine, make_event().id)
        for n in range(1, 11):
            sender = "alice" if n % 2 else "bob"
            result = try_send(db_engine, thread["id"], sender, sender.title(), None, f"msg {n}")
            assert result.message_count == n
            assert result.remaining == 10 - n

        with pytest.raises(MessageLimitReachedError) as exc_info:
            try_send(db_engine, thread["id"], "alice", "Alice", None, "one more")

        err = exc_info.value
        assert err.status_code == 429
        assert err.details["limit"] == 10
        assert err.details["count"] == 10
        assert err.details["remaining"] == 0
        assert "Exchange contact info" in err.details["message"]
        with Session(db_engine) as session:
            assert session.scalar(select(func.count()).select_from(DMMessage)) == 10
            assert session.get(DMThread, thread["id"]).message_count == 10

    def test_custom_limit(self, db_engine, make_event):
        thread, _ = _open(db_engine, make_event().id)
        try_send(db_engine, thread["id"], "alice", "Alice", None, "one", limit=1)
        with pytest.raises(MessageLimitReachedError):
            try_send(db_engine, thread["id"], "bob", "Bob", None, "two", limit=1)

    def test_content_is_trimmed(self, db_engine, make_event):
        thread, _ = _open(db_engine, make_event().id)
        result = try_send(db_engine, thread["id"], "alice", "Alice", None, "  hey  ")
        assert result.message["content"] == "hey"
        assert result.to_dict()["remaining"] == 9


class TestSendRejections:
    def test_non_participant(self, db_engine, make_event):
        thread, _ = _open(db_engine, make_event().id)
        with pytest.raises(NotParticipantError):
            try_send(db_engine, thread["id"], "mallory", "Mallory", None, "hi")

    def test_unknown_thread(self, db_engine):
        with pytest.raises(ThreadNotFoundError):
            try_send(db_engine, "no-such-thread", "alice", "Alice", None, "hi")

    def test_blank_content(self, db_engine, make_event):
        thread, _ = _open(db_engine, make_event().id)
        with pytest.raises(ValidationError, match="Message cannot be empty"):
            try_send(db_engine, thread["id"], "alice", "Alice", None, "   ")

    def test_non_string_content(self, db_engine, make_event):
        thread, _ = _open(db_engine, make_event().id)
        with pytest.raises(ValidationError, match="must be a string"):
            try_send(db_engine, thread["id"], "alice", "Alice", None, 5)

    def test_too_long(self, db_engine, make_event):
        thread, _ = _open(db_engine, make_event().id)
        with pytest.raises(ValidationError, match="too long"):
            try_send(db_engine, thread["id"], "alice", "Alice", None, "x" * 1001)

    def test_exactly_max_length_allowed(self, db_engine, make_event):
        thread, _ = _open(db_engine, make_event().id)
        result = try_send(db_engine, thread["id"], "alice", "Alice", None, "x" * 1000)
        assert len(result.message["content"]) == 1000

    def test_rejections_do_not_consume_quota(self, db_engine, make_event):
        thread, _ = _open(db_engine, make_event().id)
        with pytest.raises(NotParticipantError):
            try_send(db_engine, thread["id"], "mallory", "Mallory", None, "hi")
        with Session(db_engine) as session:
            assert session.get(DMThread, thread["id"]).message_count == 0


class TestListMessages:
    def test_oldest_first_with_quota(self, db_engine, make_event):
        thread, _ = _open(db_engine, make_event().id)
        for text in ("one", "two", "three"):
            try_send(db_engine, thread["id"], "alice", "Alice", None, text)
            time.sleep(0.002)

        page = list_messages(db_engine, thread["id"], "bob")
        assert [m["content"] for m in page["messages"]] == ["one", "two", "three"]
        assert page["messageCount"] == 3
        assert page["remaining"] == 7

    def test_since_returns_only_newer(self, db_engine, make_event):
        thread, _ = _open(db_engine, make_event().id)
        first = try_send(db_engine, thread["id"], "alice", "Alice", None, "old")
        time.sleep(0.002)
        try_send(db_engine, thread["id"], "bob", "Bob", None, "new")

        page = list_messages(db_engine, thread["id"], "alice", since=first.message["createdAt"])
        assert [m["content"] for m in page["messages"]] == ["new"]

    def test_outsider_cannot_read(self, db_engine, make_event):
        thread, _ = _open(db_engine, make_event().id)
        with pytest.raises(NotParticipantError):
            list_messages(db_engine, thread["id"], "mallory")

    def test_bad_since(self):
        with pytest.raises(ValidationError):
            parse_since("yesterday")

    def test_since_accepts_zulu(self):
        assert parse_since("2026-06-01T12:00:00Z").utcoffset().total_seconds() == 0
