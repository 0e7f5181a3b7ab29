"""
privatepartyy.api.routes.qr — Event QR codes
=============================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from privatepartyy.api.deps import get_config, get_event_sources
from privatepartyy.config import PrivatePartyyConfig
from privatepartyy.database.engine import run_db
from privatepartyy.engine.qr import build_event_url, parse_qr_payload, render_qr_data_url
from privatepartyy.services import event_service
from privatepartyy.services.resolver import EventSource, require_event

router = APIRouter(tags=["qr"])


class ScanBody(BaseModel):
    data: str


@router.api_route("/events/{id_or_token}/qr", methods=["GET", "POST"])
async def event_qr(
    id_or_token: str,
    sources: list[EventSource] = Depends(get_event_sources),
    cfg: PrivatePartyyConfig = Depends(get_config),
):
    """QR code (PNG data URL) encoding the event's join URL."""
    resolved = await run_db(require_event, sources, id_or_token)
    event = await run_db(event_service.get_event, resolved.engine, resolved.event_id)
    event_url = build_event_url(cfg.base_url, event.id, event.token)
    return {
        "id": event.id,
        "name": event.title,
        "token": event.token,
        "qrUrl": render_qr_data_url(event_url),
        "eventUrl": event_url,
    }


@router.post("/qr/parse")
def parse_scan(body: ScanBody):
    """Decode a scanned payload into the join-confirmation destination."""
    payload = parse_qr_payload(body.data)
    return {
        "eventId": payload.event_id,
        "token": payload.token,
        "redirectTo": payload.join_path,
    }
