"""
privatepartyy.api.routes.profiles — User profiles by email
===========================================================
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy import Engine

from privatepartyy.api.deps import get_engine
from privatepartyy.database.engine import run_db
from privatepartyy.services import profile_service

router = APIRouter(tags=["profiles"])


@router.get("/users/profile")
async def get_profile(email: str | None = None, engine: Engine = Depends(get_engine)):
    return {"profile": await run_db(profile_service.get_profile_by_email, engine, email)}


@router.post("/users/profile")
async def upsert_profile(body: dict[str, Any] = Body(...), engine: Engine = Depends(get_engine)):
    """Create the profile, or update the one already registered to this email."""
    profile = await run_db(profile_service.upsert_profile, engine, body)
    return {"success": True, "profile": profile}
