"""Structured logging configuration."""

import logging
import sys
from urllib.parse import urlsplit, urlunsplit

import orjson
import structlog

# Event keys that may hold a user-supplied URL.
URL_KEYS = ("url", "source_url", "target")


def _level_number(level: str) -> int:
    """Translate a level name like "debug" into its numeric value."""
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO


def redact_url_query(logger, method_name, event_dict):
    """Drop query strings and fragments from logged URLs.

    Query parameters regularly carry tokens, so only scheme, host and path
    reach the log sink.
    """
    for key in URL_KEYS:
        value = event_dict.get(key)
        if not isinstance(value, str) or ("?" not in value and "#" not in value):
            continue
        try:
            parts = urlsplit(value)
        except ValueError:
            event_dict[key] = "<unparseable>"
            continue
        event_dict[key] = urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
    return event_dict


def configure_logging(json_output: bool = True, level: str = "INFO", redact_urls: bool = True) -> None:
    """Configure structlog for the reader service.

    Args:
        json_output: If True, output JSON logs. If False, use console renderer.
        level: Minimum level name to emit.
        redact_urls: Strip query strings from URL fields.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.CallsiteParameterAdder(
            {
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            }
        ),
    ]
    if redact_urls:
        shared_processors.append(redact_url_query)

    if json_output or not sys.stderr.isatty():
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(serializer=orjson.dumps),
        ]
        logger_factory: structlog.types.WrappedLogger = structlog.BytesLoggerFactory()
    else:
        processors = shared_processors + [structlog.dev.ConsoleRenderer()]
        logger_factory = structlog.PrintLoggerFactory()

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_level_number(level)),
        logger_factory=logger_factory,
        cache_logger_on_first_use=True,
    )


def bind_request(request_id: str, client: str | None = None) -> None:
    """Attach request fields to every log line in the current context."""
    structlog.contextvars.clear_contextvars()
    fields = {"request_id": request_id}
    if client:
        fields["client"] = client
    structlog.contextvars.bind_contextvars(**fields)


def clear_request() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Optional logger name.

    Returns:
        A structlog bound logger.
    """
    return structlog.get_logger(name)
