"""Tests for logging.py - structlog configuration."""

import structlog


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def setup_method(self):
        """Reset structlog before each test."""
        structlog.reset_defaults()

    def test_configure_logging_json_output(self):
        """Test configure_logging sets up JSON output."""
        from rsvp_reader.logging import configure_logging

        configure_logging(json_output=True)

        processors = structlog.get_config()["processors"]
        assert any(isinstance(p, structlog.processors.JSONRenderer) for p in processors)

    def test_configure_logging_console_output(self):
        """Test configure_logging sets up console output when json_output=False."""
        from rsvp_reader.logging import configure_logging

        configure_logging(json_output=False)
        assert structlog.is_configured()

    def test_configure_logging_includes_redaction(self):
        """Test URL redaction is on by default and can be disabled."""
        from rsvp_reader.logging import configure_logging, redact_url_query

        configure_logging(json_output=True)
        assert redact_url_query in structlog.get_config()["processors"]

        configure_logging(json_output=True, redact_urls=False)
        assert redact_url_query not in structlog.get_config()["processors"]

    def test_level_number_translates_names(self):
        """Test level names map to logging numbers, unknown ones to INFO."""
        import logging

        from rsvp_reader.logging import _level_number

        assert _level_number("debug") == logging.DEBUG
        assert _level_number("WARNING") == logging.WARNING
        assert _level_number("chatty") == logging.INFO

    def test_get_logger_returns_bound_logger(self):
        """Test get_logger returns a structlog bound logger."""
        from rsvp_reader.logging import configure_logging, get_logger

        configure_logging(json_output=False)
        log = get_logger()

        assert hasattr(log, "bind")
        assert hasattr(log, "info")


class TestRedactUrlQuery:
    """Tests for the URL redaction processor."""

    def test_query_and_fragment_removed(self):
        """Test query strings and fragments are stripped from url fields."""
        from rsvp_reader.logging import redact_url_query

        event = {"event": "fetch_started", "url": "https://example.com/a?token=secret#top"}
        result = redact_url_query(None, "info", event)

        assert result["url"] == "https://example.com/a"

    def test_plain_url_untouched(self):
        """Test URLs without a query pass through unchanged."""
        from rsvp_reader.logging import redact_url_query

        event = {"url": "https://example.com/a", "target": 5}
        assert redact_url_query(None, "info", event) == {"url": "https://example.com/a", "target": 5}


class TestRequestContext:
    """Tests for request-scoped log fields."""

    def teardown_method(self):
        structlog.contextvars.clear_contextvars()

    def test_bind_request_sets_fields(self):
        """Test bind_request exposes request id and client."""
        from rsvp_reader.logging import bind_request

        bind_request("abc123", "203.0.113.9")

        assert structlog.contextvars.get_contextvars() == {
            "request_id": "abc123",
            "client": "203.0.113.9",
        }

    def test_clear_request_removes_fields(self):
        """Test clear_request drops bound fields."""
        from rsvp_reader.logging import bind_request, clear_request

        bind_request("abc123")
        clear_request()

        assert structlog.contextvars.get_contextvars() == {}
