"""Tests for errors.py - fetch failure kinds."""

import pytest


class TestFetchErrorBodies:
    """Tests for the error response bodies."""

    @pytest.mark.parametrize(
        ("error_name", "status"),
        [
            ("InvalidInput", 400),
            ("PolicyRejected", 400),
            ("RedirectBlocked", 400),
            ("FetchTimeout", 408),
            ("TooLarge", 413),
            ("Unextractable", 422),
            ("NetworkError", 502),
            ("InternalError", 500),
        ],
    )
    def test_status_codes(self, error_name, status):
        """Test each failure kind maps to its HTTP status."""
        import rsvp_reader.errors as errors

        error = getattr(errors, error_name)()
        assert error.status_code == status
        assert error.to_dict()["success"] is False
        assert error.to_dict()["error"]

    def test_hint_only_when_present(self):
        """Test hint is omitted when there is nothing actionable."""
        from rsvp_reader.errors import NetworkError, TooLarge

        assert "hint" not in NetworkError().to_dict()
        assert "paste" in TooLarge().to_dict()["hint"]

    def test_rate_limited_mentions_wait(self):
        """Test the rate-limit hint carries the wait time."""
        from rsvp_reader.errors import RateLimited

        error = RateLimited(retry_after=12, limit=10)
        assert error.status_code == 429
        assert "12 seconds" in error.to_dict()["hint"]

    def test_fallback_timeout_message_differs(self):
        """Test primary and fallback timeouts read differently."""
        from rsvp_reader.errors import FetchTimeout

        assert FetchTimeout().message != FetchTimeout(via_fallback=True).message

    def test_custom_message_kept(self):
        """Test an explicit message overrides the default."""
        from rsvp_reader.errors import PolicyRejected

        assert PolicyRejected("nope").to_dict()["error"] == "nope"
