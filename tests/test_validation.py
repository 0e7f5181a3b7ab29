"""
tests/test_validation.py — Collect-All Request Validators
==========================================================
Every violated rule must be reported, not just the first one.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from privatepartyy.engine.validation import (
    ensure_valid,
    validate_event_data,
    validate_profile_data,
    validate_upload_file,
    validate_upload_request,
)
from privatepartyy.errors import ValidationError


def _upload(**overrides) -> dict:
    data = {
        "eventId": "6f1c2b1e-0a57-4a3e-9a53-9e3c9f0c1d2e",
        "eventToken": "rooftop-1a2b",
        "fileName": "photo.jpg",
        "fileType": "image/jpeg",
        "fileSize": 1024,
    }
    data.update(overrides)
    return data


class TestValidateUploadRequest:
    def test_valid_request_has_no_errors(self):
        assert validate_upload_request(_upload()) == []

    def test_reports_every_violation(self):
        errors = validate_upload_request({
            "eventId": "",
            "eventToken": "",
            "fileName": "../etc/passwd",
            "fileType": "application/pdf",
            "fileSize": 20 * 1024 * 1024,
            "uploadType": "banner",
        })
        assert "Event ID is required" in errors
        assert "Event token is required" in errors
        assert any(e.startswith("Invalid file type. Allowed types:") for e in errors)
        assert "File size exceeds maximum allowed size of 10MB" in errors
        assert "Invalid upload type. Must be: post, event, or profile" in errors
        assert "Invalid file name format: path traversal is not allowed" in errors
        assert len(errors) == 6

    def test_missing_file_type_reports_both_rules(self):
        errors = validate_upload_request(_upload(fileType=None))
        assert "File type is required" in errors
        assert any(e.startswith("Invalid file type") for e in errors)

    def test_allowed_types_listed_in_message(self):
        errors = validate_upload_request(_upload(fileType="text/plain"))
        assert "image/jpeg" in errors[0]
        assert "image/svg+xml" in errors[0]

    @pytest.mark.parametrize("size", [0, -5, "big"])
    def test_non_positive_size(self, size):
        assert validate_upload_request(_upload(fileSize=size)) == [
            "File size must be a positive number"
        ]

    def test_exact_max_size_is_allowed(self):
        assert validate_upload_request(_upload(fileSize=10 * 1024 * 1024)) == []

    def test_long_file_name(self):
        errors = validate_upload_request(_upload(fileName="a" * 252 + ".jpg"))
        assert errors == ["File name must be at most 255 characters"]

    @pytest.mark.parametrize("name", ["a/b.jpg", "a\\b.jpg", "..jpg"])
    def test_path_traversal_names(self, name):
        assert validate_upload_request(_upload(fileName=name)) == [
            "Invalid file name format: path traversal is not allowed"
        ]

    @pytest.mark.parametrize("upload_type", ["post", "event", "profile"])
    def test_known_upload_types(self, upload_type):
        assert validate_upload_request(_upload(uploadType=upload_type)) == []


class TestValidateUploadFile:
    def test_ignores_event_fields(self):
        assert validate_upload_file({"fileName": "a.jpg", "fileType": "image/png", "fileSize": 10}) == []

    def test_reports_file_rules_only(self):
        errors = validate_upload_file({
            "fileName": "..\\" + "a" * 300,
            "fileType": "text/plain",
            "fileSize": 0,
        })
        assert "Event ID is required" not in errors
        assert any(e.startswith("Invalid file type") for e in errors)
        assert "File size must be a positive number" in errors
        assert "File name must be at most 255 characters" in errors
        assert "Invalid file name format: path traversal is not allowed" in errors
        assert len(errors) == 4


class TestValidateEventData:
    NOW = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)

    def _event(self, **overrides) -> dict:
        data = {"title": "Rooftop Party", "date": "2026-06-10", "time": "20:00"}
        data.update(overrides)
        return data

    def test_valid_event(self):
        assert validate_event_data(self._event(), now=self.NOW) == []

    def test_name_is_accepted_for_title(self):
        data = {"name": "Garden Gig", "date": "2026-06-10", "time": "18:30"}
        assert validate_event_data(data, now=self.NOW) == []

    def test_collects_multiple_errors(self):
        errors = validate_event_data(
            {
                "title": "ab",
                "date": "10/06/2026",
                "time": "8pm",
                "maxAttendees": 0,
                "hostEmail": "not-an-email",
                "tags": ["x" * 51],
            },
            now=self.NOW,
        )
        assert "Title/Name must be at least 3 characters long" in errors
        assert "Invalid date format (YYYY-MM-DD required)" in errors
        assert "Invalid time format (HH:MM required)" in errors
        assert "Max attendees must be between 1 and 10000" in errors
        assert "Invalid host email format" in errors
        assert "Each tag must be a string with max 50 characters" in errors

    def test_past_event_rejected(self):
        errors = validate_event_data(self._event(date="2026-05-01"), now=self.NOW)
        assert errors == ["Event date must be in the future"]

    def test_impossible_calendar_date(self):
        errors = validate_event_data(self._event(date="2026-02-30"), now=self.NOW)
        assert errors == ["Invalid date format (YYYY-MM-DD required)"]

    def test_update_mode_skips_date_checks(self):
        assert validate_event_data({"title": "Renamed"}, require_date_and_time=False) == []

    def test_too_many_tags(self):
        errors = validate_event_data(self._event(tags=[str(i) for i in range(11)]), now=self.NOW)
        assert errors == ["Maximum 10 tags allowed"]

    def test_bad_image_url(self):
        errors = validate_event_data(self._event(imageUrl="not a url"), now=self.NOW)
        assert errors == ["Invalid image URL format"]


class TestValidateProfileData:
    def test_missing_fields(self):
        assert validate_profile_data({}) == [
            "id is required", "email is required", "name is required",
        ]

    def test_bad_email(self):
        errors = validate_profile_data({"id": "u1", "name": "Ann", "email": "ann@"})
        assert errors == ["Invalid email format"]


class TestEnsureValid:
    def test_no_errors_passes(self):
        ensure_valid([])

    def test_errors_raise_with_details(self):
        with pytest.raises(ValidationError) as exc_info:
            ensure_valid(["a", "b"])
        assert exc_info.value.status_code == 400
        assert exc_info.value.to_dict() == {"error": "Validation failed", "details": ["a", "b"]}
