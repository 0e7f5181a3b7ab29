"""
tests/test_qr.py — QR Payload Parsing & Rendering
==================================================
"""

from __future__ import annotations

import base64

import pytest

from privatepartyy.engine.qr import (
    QRPayload,
    build_event_url,
    parse_qr_payload,
    render_qr_data_url,
)
from privatepartyy.errors import InvalidQRFormatError


class TestParseQrPayload:
    @pytest.mark.parametrize(
        "raw",
        [
            "https://privatepartyy.com/event/123?token=abc",
            "http://localhost:3000/event/123?token=abc",
            "/event/123?token=abc",
            "event/123?token=abc",
            "  https://privatepartyy.com/event/123?token=abc  ",
        ],
    )
    def test_event_urls_with_token(self, raw):
        payload = parse_qr_payload(raw)
        assert payload == QRPayload(event_id="123", token="abc")
        assert payload.join_path == "/join/123?token=abc"

    def test_join_url_without_token(self):
        payload = parse_qr_payload("/join/123")
        assert payload.event_id == "123"
        assert payload.token is None
        assert payload.join_path == "/join/123"

    def test_token_among_other_params(self):
        payload = parse_qr_payload("https://x.io/event/abc?ref=qr&token=t-1#top")
        assert payload.token == "t-1"

    def test_percent_encoded_values(self):
        payload = parse_qr_payload("/event/my%20party?token=a%2Bb")
        assert payload.event_id == "my party"
        assert payload.token == "a+b"
        assert payload.join_path == "/join/my%20party?token=a%2Bb"

    @pytest.mark.parametrize("raw", ["", "hello world", "https://example.com/", "/events-list"])
    def test_unrecognised_payloads(self, raw):
        with pytest.raises(InvalidQRFormatError) as exc_info:
            parse_qr_payload(raw)
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Invalid QR code format"


class TestBuildEventUrl:
    def test_trailing_slash_stripped(self):
        assert (
            build_event_url("https://privatepartyy.com/", "e1", "rooftop-1a2b")
            == "https://privatepartyy.com/event/e1?token=rooftop-1a2b"
        )

    def test_url_parses_back(self):
        url = build_event_url("https://privatepartyy.com", "e1", "tok en")
        assert parse_qr_payload(url) == QRPayload("e1", "tok en")


class TestRenderQrDataUrl:
    def test_png_data_url(self):
        url = render_qr_data_url("https://privatepartyy.com/event/e1?token=t")
        assert url.startswith("data:image/png;base64,")
        raw = base64.b64decode(url.split(",", 1)[1])
        assert raw[:8] == b"\x89PNG\r\n\x1a\n"
