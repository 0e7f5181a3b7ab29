"""
privatepartyy.services.profile_service — User Profiles
=======================================================

Profiles are keyed by (lower-cased) email: posting the same email twice
updates the existing row instead of creating a second one.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError

from privatepartyy.constants import DEFAULT_AVATAR
from privatepartyy.database.engine import get_session
from privatepartyy.database.models import UserProfile
from privatepartyy.engine.validation import ensure_valid, validate_profile_data
from privatepartyy.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def profile_dict(profile: UserProfile) -> dict[str, Any]:
    return {
        "id": profile.id,
        "name": profile.name,
        "email": profile.email,
        "avatar": profile.avatar,
        "generation": profile.generation,
        "isAnonymous": profile.is_anonymous,
        "createdAt": profile.created_at.isoformat() if profile.created_at else None,
        "updatedAt": profile.updated_at.isoformat() if profile.updated_at else None,
    }


def upsert_profile(engine: Engine, data: dict[str, Any]) -> dict[str, Any]:
    ensure_valid(validate_profile_data(data))
    email = data["email"].strip().lower()

    try:
        with get_session(engine) as session:
            profile = session.scalar(select(UserProfile).where(UserProfile.email == email))
            if profile is None:
                profile = UserProfile(id=data["id"], email=email)
                session.add(profile)
                logger.info("Profile created for %s", email)
            else:
                logger.info("Profile updated for %s", email)

            profile.name = data["name"]
            profile.avatar = data.get("avatar") or DEFAULT_AVATAR
            profile.generation = data.get("generation")
            profile.is_anonymous = bool(data.get("isAnonymous", False))
            session.flush()
            return profile_dict(profile)
    except IntegrityError as exc:
        # The id is already taken by a profile with another email.
        raise ConflictError("Profile id already belongs to another email") from exc


def get_profile_by_email(engine: Engine, email: str | None) -> dict[str, Any]:
    if not email:
        raise ValidationError("Email is required")
    with get_session(engine) as session:
        profile = session.scalar(
            select(UserProfile).where(UserProfile.email == email.strip().lower())
        )
        if profile is None:
            raise NotFoundError("Profile not found")
        return profile_dict(profile)
