"""
privatepartyy.services.post_service — Event Feed
=================================================

Posts are strictly event-scoped: every query filters on ``event_id`` so a
feed never shows another event's posts.

The database only knows two post types (``text`` and ``image``).  A post
with rows in ``event_post_media`` is stored as ``image`` and reported as
``media``; for image/media posts ``content`` holds the caption.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from privatepartyy.constants import ANONYMOUS_NAME, DEFAULT_AVATAR
from privatepartyy.database.engine import get_session
from privatepartyy.database.models import Event, Post, PostLike, PostMedia, PostType
from privatepartyy.errors import NotFoundError, ValidationError
from privatepartyy.services.upload_service import StoredObject

logger = logging.getLogger(__name__)

POST_TYPES = ("text", "image", "media")


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def media_dict(item: PostMedia) -> dict[str, Any]:
    return {
        "id": item.id,
        "mediaType": item.media_type,
        "mediaUrl": item.media_url,
        "fileKey": item.file_key,
        "thumbnailUrl": item.thumbnail_url,
        "originalFilename": item.original_filename,
        "displayOrder": item.display_order,
    }


def post_dict(
    post: Post,
    *,
    media: list[PostMedia] | None = None,
    host_id: str | None = None,
    is_liked: bool = False,
) -> dict[str, Any]:
    """Feed shape of a post (camelCase)."""
    media = media or []
    is_image = post.type == PostType.IMAGE
    return {
        "id": post.id,
        "eventId": post.event_id,
        "type": "media" if media else post.type,
        "content": None if is_image else post.content,
        "caption": post.content if is_image else None,
        "imageUrl": post.image_url,
        "fileKey": post.file_key,
        "originalFilename": post.original_filename,
        "mediaItems": [media_dict(m) for m in media],
        "authorId": post.author_id,
        "authorName": post.author_name,
        "authorAvatar": post.author_avatar,
        "isHost": bool(host_id) and post.author_id == host_id,
        "likes": post.likes or 0,
        "comments": post.comments or 0,
        "isLiked": is_liked,
        "createdAt": _iso(post.created_at),
        "updatedAt": _iso(post.updated_at),
    }


# ---------------------------------------------------------------------------
# Feed
# ---------------------------------------------------------------------------
def list_posts(engine: Engine, event_id: str, user_id: str | None = None) -> list[dict[str, Any]]:
    """All posts of *event_id*, newest first, with media items and like state."""
    with get_session(engine) as session:
        event = session.get(Event, event_id)
        if event is None:
            raise NotFoundError("Event not found")

        posts = session.scalars(
            select(Post)
            .where(Post.event_id == event_id)
            .order_by(Post.created_at.desc(), Post.id)
        ).all()
        post_ids = [p.id for p in posts]

        media_by_post: dict[str, list[PostMedia]] = {}
        liked: set[str] = set()
        if post_ids:
            for item in session.scalars(
                select(PostMedia)
                .where(PostMedia.post_id.in_(post_ids))
                .order_by(PostMedia.display_order)
            ):
                media_by_post.setdefault(item.post_id, []).append(item)

            if user_id:
                liked = set(session.scalars(
                    select(PostLike.post_id).where(
                        PostLike.post_id.in_(post_ids), PostLike.user_id == user_id
                    )
                ))

        logger.debug("Feed for event %s: %d posts", event_id, len(posts))
        return [
            post_dict(
                p,
                media=media_by_post.get(p.id),
                host_id=event.host_id,
                is_liked=p.id in liked,
            )
            for p in posts
        ]


def get_post_event_id(engine: Engine, post_id: str) -> str:
    with get_session(engine) as session:
        event_id = session.scalar(select(Post.event_id).where(Post.id == post_id))
    if event_id is None:
        raise NotFoundError("Post not found")
    return event_id


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------
def _add_media(session: Session, post: Post, items: list[dict[str, Any]]) -> list[PostMedia]:
    rows = [
        PostMedia(
            post_id=post.id,
            media_type=item.get("type") or "image",
            media_url=item["url"],
            file_key=item.get("fileKey"),
            original_filename=item.get("filename"),
            display_order=index,
        )
        for index, item in enumerate(items)
    ]
    session.add_all(rows)
    return rows


def create_post(engine: Engine, event_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Create a text, image or multi-media post from a camelCase body."""
    post_type = data.get("type")
    content = data.get("content")
    media_items = data.get("mediaItems") or []

    if (
        post_type not in POST_TYPES
        or (post_type == "text" and not content)
        or (post_type == "image" and not data.get("imageUrl"))
        or (post_type == "media" and not media_items)
    ):
        raise ValidationError("Missing required fields for post creation")
    if any(not isinstance(m, dict) or not m.get("url") for m in media_items):
        raise ValidationError("Every media item needs a url")

    with get_session(engine) as session:
        if session.get(Event, event_id) is None:
            raise NotFoundError("Event not found")

        post = Post(
            event_id=event_id,
            # multi-media posts are stored as image; their items go to event_post_media
            type=PostType.IMAGE if post_type == "media" else post_type,
            content=content or data.get("caption") or None,
            image_url=data.get("imageUrl"),
            file_key=data.get("fileKey"),
            original_filename=data.get("originalFilename"),
            author_id=data.get("authorId") or "anonymous",
            author_name=data.get("authorName") or ANONYMOUS_NAME,
            author_avatar=data.get("authorAvatar") or DEFAULT_AVATAR,
        )
        session.add(post)
        session.flush()

        media: list[PostMedia] = []
        if post_type == "media":
            media = _add_media(session, post, media_items)
            session.flush()

        logger.info("Post %s created in event %s (%s)", post.id, event_id, post_type)
        return post_dict(post, media=media)


def make_photo_recorder(
    engine: Engine,
    event_id: str,
    *,
    author_id: str | None = None,
    author_name: str | None = None,
    author_avatar: str | None = None,
    caption: str | None = None,
):
    """Recorder for :class:`UploadOrchestrator` that inserts the post row.

    One stored object becomes an ``image`` post; several become a ``media``
    post with ordered media items.
    """

    def record(stored: list[StoredObject]) -> dict[str, Any] | None:
        if not stored:
            return None
        first = stored[0]
        body: dict[str, Any] = {
            "type": "image" if len(stored) == 1 else "media",
            "caption": caption,
            "imageUrl": first.public_url,
            "fileKey": first.path,
            "originalFilename": first.filename,
            "authorId": author_id,
            "authorName": author_name,
            "authorAvatar": author_avatar,
        }
        if len(stored) > 1:
            body["mediaItems"] = [
                {"type": "image", "url": s.public_url, "fileKey": s.path, "filename": s.filename}
                for s in stored
            ]
        return create_post(engine, event_id, body)

    return record
