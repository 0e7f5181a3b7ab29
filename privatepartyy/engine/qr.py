"""
privatepartyy.engine.qr — QR Payload Parsing & Rendering
=========================================================

Scanned payloads come in several shapes::

    https://privatepartyy.com/event/123?token=abc   # full URL
    /event/123?token=abc                            # relative URL
    event/123?token=abc                             # bare path
    /join/123                                       # join URL, no token

Whatever was scanned, the caller is always routed to the join-confirmation
page (``/join/{event_id}``), never straight into the event feed, so the
attendee can pick how to sign in.
"""

from __future__ import annotations

import base64
import io
import re
from dataclasses import dataclass
from urllib.parse import quote, unquote

import qrcode

from privatepartyy.errors import InvalidQRFormatError

_SCHEME_HOST = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://[^/]+")
_EVENT_PATH = re.compile(r"(?:event|join)/([^?]+)")
_TOKEN_PARAM = re.compile(r"token=([^&#]+)")


@dataclass(frozen=True, slots=True)
class QRPayload:
    event_id: str
    token: str | None = None

    @property
    def join_path(self) -> str:
        """Join-confirmation destination for this payload."""
        path = f"/join/{quote(self.event_id, safe='')}"
        if self.token:
            path += f"?token={quote(self.token, safe='')}"
        return path


def parse_qr_payload(raw: str) -> QRPayload:
    """Extract the event identifier and optional join token from *raw*.

    Raises :class:`InvalidQRFormatError` when no ``event/<id>`` or
    ``join/<id>`` segment is present.
    """
    clean = (raw or "").strip()
    clean = _SCHEME_HOST.sub("", clean, count=1)
    if clean.startswith("/"):
        clean = clean[1:]

    match = _EVENT_PATH.search(clean)
    if not match:
        raise InvalidQRFormatError(raw)
    event_id = unquote(match.group(1))

    token = None
    _, _, query = clean.partition("?")
    token_match = _TOKEN_PARAM.search(query)
    if token_match:
        token = unquote(token_match.group(1))

    return QRPayload(event_id=event_id, token=token)


def build_event_url(base_url: str, event_id: str, token: str) -> str:
    """Canonical URL encoded into an event's QR code."""
    return f"{base_url.rstrip('/')}/event/{event_id}?token={quote(token, safe='')}"


def render_qr_data_url(text: str, *, box_size: int = 10, border: int = 2) -> str:
    """Render *text* as a black-on-white PNG QR code, returned as a data URL."""
    qr = qrcode.QRCode(box_size=box_size, border=border)
    qr.add_data(text)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"
