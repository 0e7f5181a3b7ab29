"""
privatepartyy.services.social_service — Likes & Comments
=========================================================

``event_posts.likes`` and ``event_posts.comments`` are denormalised
counters.  Every mutation here recounts them inside the same transaction,
so they always match the rows.

One like per user per post is enforced by a unique constraint; the
pre-check only exists to give a clean 409 in the common case.  Comments
can only be edited or deleted by their author.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Engine, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from privatepartyy.constants import ANONYMOUS_NAME, DEFAULT_AVATAR
from privatepartyy.database.engine import get_session
from privatepartyy.database.models import Post, PostComment, PostLike
from privatepartyy.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def like_dict(like: PostLike) -> dict[str, Any]:
    return {
        "id": like.id,
        "userId": like.user_id,
        "userName": like.user_name,
        "userAvatar": like.user_avatar,
        "createdAt": _iso(like.created_at),
    }


def comment_dict(comment: PostComment) -> dict[str, Any]:
    return {
        "id": comment.id,
        "postId": comment.post_id,
        "authorId": comment.author_id,
        "authorName": comment.author_name,
        "authorAvatar": comment.author_avatar,
        "content": comment.content,
        "createdAt": _iso(comment.created_at),
        "updatedAt": _iso(comment.updated_at),
    }


def _require_post(session: Session, post_id: str) -> Post:
    post = session.get(Post, post_id)
    if post is None:
        raise NotFoundError("Post not found")
    return post


def _recount(session: Session, post: Post) -> None:
    session.flush()
    post.likes = session.scalar(
        select(func.count()).select_from(PostLike).where(PostLike.post_id == post.id)
    ) or 0
    post.comments = session.scalar(
        select(func.count()).select_from(PostComment).where(PostComment.post_id == post.id)
    ) or 0


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------
def list_likes(engine: Engine, post_id: str) -> list[dict[str, Any]]:
    with get_session(engine) as session:
        likes = session.scalars(
            select(PostLike)
            .where(PostLike.post_id == post_id)
            .order_by(PostLike.created_at.desc())
        ).all()
        return [like_dict(like) for like in likes]


def add_like(
    engine: Engine,
    post_id: str,
    user_id: str | None,
    user_name: str | None = None,
    user_avatar: str | None = None,
) -> dict[str, Any]:
    if not user_id:
        raise ValidationError("User ID is required")

    try:
        with get_session(engine) as session:
            post = _require_post(session, post_id)
            existing = session.scalar(
                select(PostLike.id).where(PostLike.post_id == post_id, PostLike.user_id == user_id)
            )
            if existing is not None:
                raise ConflictError("Post already liked by this user")

            like = PostLike(
                post_id=post_id,
                user_id=user_id,
                user_name=user_name or ANONYMOUS_NAME,
                user_avatar=user_avatar or DEFAULT_AVATAR,
            )
            session.add(like)
            _recount(session, post)
            return like_dict(like)
    except IntegrityError as exc:
        # Lost the race against a concurrent like from the same user.
        raise ConflictError("Post already liked by this user") from exc


def remove_like(engine: Engine, post_id: str, user_id: str | None) -> None:
    if not user_id:
        raise ValidationError("User ID is required")
    with get_session(engine) as session:
        post = _require_post(session, post_id)
        session.execute(
            delete(PostLike).where(PostLike.post_id == post_id, PostLike.user_id == user_id)
        )
        _recount(session, post)


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------
def list_comments(engine: Engine, post_id: str) -> list[dict[str, Any]]:
    with get_session(engine) as session:
        comments = session.scalars(
            select(PostComment)
            .where(PostComment.post_id == post_id)
            .order_by(PostComment.created_at.asc(), PostComment.id)
        ).all()
        return [comment_dict(c) for c in comments]


def add_comment(engine: Engine, post_id: str, data: dict[str, Any]) -> dict[str, Any]:
    author_id = data.get("authorId")
    content = data.get("content")
    if not author_id or not content:
        raise ValidationError("Author ID and content are required")
    if not isinstance(author_id, str) or not isinstance(content, str):
        raise ValidationError("Author ID and content must be strings")
    if not content.strip():
        raise ValidationError("Comment content cannot be empty")

    with get_session(engine) as session:
        post = _require_post(session, post_id)
        comment = PostComment(
            post_id=post_id,
            author_id=author_id,
            author_name=data.get("authorName") or ANONYMOUS_NAME,
            author_avatar=data.get("authorAvatar") or DEFAULT_AVATAR,
            content=content.strip(),
        )
        session.add(comment)
        _recount(session, post)
        return comment_dict(comment)


def update_comment(engine: Engine, post_id: str, data: dict[str, Any]) -> dict[str, Any]:
    comment_id = data.get("commentId")
    content = data.get("content")
    author_id = data.get("authorId")
    if not comment_id or not content or not author_id:
        raise ValidationError("Comment ID, content, and author ID are required")
    if not all(isinstance(v, str) for v in (comment_id, content, author_id)):
        raise ValidationError("Comment ID, content, and author ID must be strings")
    if not content.strip():
        raise ValidationError("Comment content cannot be empty")

    with get_session(engine) as session:
        comment = session.scalar(
            select(PostComment).where(
                PostComment.id == comment_id,
                PostComment.post_id == post_id,
                PostComment.author_id == author_id,
            )
        )
        if comment is None:
            raise NotFoundError("Comment not found or unauthorized")
        comment.content = content.strip()
        comment.updated_at = datetime.now(UTC)
        return comment_dict(comment)


def delete_comment(engine: Engine, post_id: str, data: dict[str, Any]) -> None:
    comment_id = data.get("commentId")
    author_id = data.get("authorId")
    if not comment_id or not author_id:
        raise ValidationError("Comment ID and author ID are required")
    if not isinstance(comment_id, str) or not isinstance(author_id, str):
        raise ValidationError("Comment ID and author ID must be strings")

    with get_session(engine) as session:
        post = _require_post(session, post_id)
        result = session.execute(
            delete(PostComment).where(
                PostComment.id == comment_id,
                PostComment.post_id == post_id,
                PostComment.author_id == author_id,
            )
        )
        if not result.rowcount:
            raise NotFoundError("Comment not found or unauthorized")
        _recount(session, post)
        logger.info("Comment %s deleted from post %s", comment_id, post_id)
