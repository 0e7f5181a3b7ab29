"""
tests/test_feed.py — Event Feed, Likes & Comments
==================================================
Feeds are strictly event-scoped; like/comment counters always match rows.
"""

from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

from privatepartyy.database.models import Post
from privatepartyy.errors import ConflictError, NotFoundError, ValidationError
from privatepartyy.services.post_service import (
    create_post,
    get_post_event_id,
    list_posts,
    make_photo_recorder,
)
from privatepartyy.services.social_service import (
    add_comment,
    add_like,
    delete_comment,
    list_comments,
    list_likes,
    remove_like,
    update_comment,
)
from privatepartyy.services.upload_service import StoredObject


def _text(engine, event_id, content="hello", author="u1"):
    return create_post(engine, event_id, {
        "type": "text", "content": content, "authorId": author, "authorName": author.upper(),
    })


def _counters(engine, post_id) -> tuple[int, int]:
    with Session(engine) as session:
        post = session.get(Post, post_id)
        return post.likes, post.comments


class TestCreatePost:
    def test_text_post(self, db_engine, make_event):
        event = make_event()
        post = _text(db_engine, event.id)
        assert post["type"] == "text"
        assert post["content"] == "hello"
        assert post["caption"] is None
        assert post["eventId"] == event.id

    def test_image_post_content_becomes_caption(self, db_engine, make_event):
        event = make_event()
        post = create_post(db_engine, event.id, {
            "type": "image", "imageUrl": "/media/a.jpg", "caption": "sunset",
        })
        assert post["type"] == "image"
        assert post["content"] is None
        assert post["caption"] == "sunset"
        assert post["authorName"] == "Anonymous"

    def test_media_post_keeps_item_order(self, db_engine, make_event):
        event = make_event()
        post = create_post(db_engine, event.id, {
            "type": "media",
            "mediaItems": [{"url": "/media/1.jpg"}, {"url": "/media/2.jpg"}],
        })
        assert post["type"] == "media"
        assert [m["mediaUrl"] for m in post["mediaItems"]] == ["/media/1.jpg", "/media/2.jpg"]
        assert [m["displayOrder"] for m in post["mediaItems"]] == [0, 1]

    @pytest.mark.parametrize(
        "body",
        [
            {"type": "text"},
            {"type": "image"},
            {"type": "media", "mediaItems": []},
            {"type": "poll", "content": "?"},
        ],
    )
    def test_missing_fields(self, db_engine, make_event, body):
        with pytest.raises(ValidationError, match="Missing required fields"):
            create_post(db_engine, make_event().id, body)

    def test_media_item_without_url(self, db_engine, make_event):
        with pytest.raises(ValidationError, match="needs a url"):
            create_post(db_engine, make_event().id, {"type": "media", "mediaItems": [{"type": "image"}]})

    def test_unknown_event(self, db_engine):
        with pytest.raises(NotFoundError):
            create_post(db_engine, "missing", {"type": "text", "content": "hi"})


class TestFeed:
    def test_feeds_are_isolated_per_event(self, db_engine, make_event):
        a, b = make_event(), make_event()
        _text(db_engine, a.id, "in A")
        _text(db_engine, b.id, "in B")
        _text(db_engine, b.id, "also in B")

        assert [p["content"] for p in list_posts(db_engine, a.id)] == ["in A"]
        assert {p["content"] for p in list_posts(db_engine, b.id)} == {"in B", "also in B"}

    def test_host_flag_and_like_state(self, db_engine, make_event):
        event = make_event(host_id="host-1")
        host_post = _text(db_engine, event.id, "welcome", author="host-1")
        _text(db_engine, event.id, "hi", author="guest")
        add_like(db_engine, host_post["id"], "guest")

        feed = {p["id"]: p for p in list_posts(db_engine, event.id, user_id="guest")}
        assert feed[host_post["id"]]["isHost"] is True
        assert feed[host_post["id"]]["isLiked"] is True
        assert feed[host_post["id"]]["likes"] == 1
        assert sum(p["isHost"] for p in feed.values()) == 1

    def test_unknown_event(self, db_engine):
        with pytest.raises(NotFoundError):
            list_posts(db_engine, "missing")

    def test_post_event_lookup(self, db_engine, make_event):
        event = make_event()
        post = _text(db_engine, event.id)
        assert get_post_event_id(db_engine, post["id"]) == event.id
        with pytest.raises(NotFoundError):
            get_post_event_id(db_engine, "missing")


class TestPhotoRecorder:
    def _stored(self, n):
        return [
            StoredObject(path=f"events/e/posts/{i}.jpg", public_url=f"/media/events/e/posts/{i}.jpg",
                         filename=f"{i}.jpg", content_type="image/jpeg")
            for i in range(n)
        ]

    def test_single_photo_becomes_image_post(self, db_engine, make_event):
        event = make_event()
        record = make_photo_recorder(db_engine, event.id, author_id="u1", caption="look")
        post = record(self._stored(1))
        assert post["type"] == "image"
        assert post["fileKey"] == "events/e/posts/0.jpg"
        assert post["caption"] == "look"

    def test_several_photos_become_media_post(self, db_engine, make_event):
        event = make_event()
        post = make_photo_recorder(db_engine, event.id)(self._stored(3))
        assert post["type"] == "media"
        assert len(post["mediaItems"]) == 3

    def test_nothing_stored(self, db_engine, make_event):
        assert make_photo_recorder(db_engine, make_event().id)([]) is None


class TestLikes:
    def test_like_then_duplicate(self, db_engine, make_event):
        post = _text(db_engine, make_event().id)
        like = add_like(db_engine, post["id"], "u2", "Ann")
        assert like["userName"] == "Ann"
        with pytest.raises(ConflictError) as exc_info:
            add_like(db_engine, post["id"], "u2")
        assert exc_info.value.status_code == 409
        assert _counters(db_engine, post["id"]) == (1, 0)

    def test_unlike_recounts(self, db_engine, make_event):
        post = _text(db_engine, make_event().id)
        add_like(db_engine, post["id"], "u2")
        add_like(db_engine, post["id"], "u3")
        remove_like(db_engine, post["id"], "u2")
        assert [like["userId"] for like in list_likes(db_engine, post["id"])] == ["u3"]
        assert _counters(db_engine, post["id"]) == (1, 0)

    def test_like_requires_user(self, db_engine, make_event):
        post = _text(db_engine, make_event().id)
        with pytest.raises(ValidationError):
            add_like(db_engine, post["id"], None)

    def test_like_unknown_post(self, db_engine):
        with pytest.raises(NotFoundError):
            add_like(db_engine, "missing", "u1")


class TestComments:
    def test_add_and_list(self, db_engine, make_event):
        post = _text(db_engine, make_event().id)
        add_comment(db_engine, post["id"], {"authorId": "u2", "content": " first "})
        add_comment(db_engine, post["id"], {"authorId": "u3", "content": "second"})
        comments = list_comments(db_engine, post["id"])
        assert [c["content"] for c in comments] == ["first", "second"]
        assert _counters(db_engine, post["id"]) == (0, 2)

    def test_blank_comment(self, db_engine, make_event):
        post = _text(db_engine, make_event().id)
        with pytest.raises(ValidationError, match="cannot be empty"):
            add_comment(db_engine, post["id"], {"authorId": "u2", "content": "   "})

    def test_only_author_can_edit(self, db_engine, make_event):
        post = _text(db_engine, make_event().id)
        comment = add_comment(db_engine, post["id"], {"authorId": "u2", "content": "typo"})

        with pytest.raises(NotFoundError, match="unauthorized"):
            update_comment(db_engine, post["id"], {
                "commentId": comment["id"], "authorId": "u3", "content": "hijack",
            })
        updated = update_comment(db_engine, post["id"], {
            "commentId": comment["id"], "authorId": "u2", "content": "fixed",
        })
        assert updated["content"] == "fixed"

    def test_only_author_can_delete(self, db_engine, make_event):
        post = _text(db_engine, make_event().id)
        comment = add_comment(db_engine, post["id"], {"authorId": "u2", "content": "bye"})

        with pytest.raises(NotFoundError):
            delete_comment(db_engine, post["id"], {"commentId": comment["id"], "authorId": "u3"})
        delete_comment(db_engine, post["id"], {"commentId": comment["id"], "authorId": "u2"})
        assert list_comments(db_engine, post["id"]) == []
        assert _counters(db_engine, post["id"]) == (0, 0)

    @pytest.mark.parametrize("body", [
        {"authorId": "u2", "content": 5},
        {"authorId": 42, "content": "hi"},
    ])
    def test_non_string_fields_rejected(self, db_engine, make_event, body):
        post = _text(db_engine, make_event().id)
        with pytest.raises(ValidationError, match="must be strings"):
            add_comment(db_engine, post["id"], body)
        assert _counters(db_engine, post["id"]) == (0, 0)

    def test_non_string_edit_rejected(self, db_engine, make_event):
        post = _text(db_engine, make_event().id)
        comment = add_comment(db_engine, post["id"], {"authorId": "u2", "content": "typo"})
        with pytest.raises(ValidationError, match="must be strings"):
            update_comment(db_engine, post["id"], {
                "commentId": comment["id"], "authorId": "u2", "content": ["fixed"],
            })
