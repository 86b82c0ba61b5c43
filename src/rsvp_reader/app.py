"""Flask application factory."""

import asyncio
import os
import threading
import uuid
from collections.abc import Coroutine
from typing import Any, TypeVar

import structlog
from flask import Flask, request

from .config import get_config
from .fetching import build_fetch_service, client_identifier
from .logging import bind_request, clear_request, configure_logging
from .routes import api_bp

log = structlog.get_logger()

T = TypeVar("T")


class AsyncRunner:
    """Manages a persistent event loop in a background thread.

    Flask request threads hand their coroutines to this loop, so all
    outbound httpx work shares one loop for the life of the process. The
    caller's contextvars, including bound log fields, travel with each
    coroutine.
    """

    def __init__(self) -> None:
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    def _ensure_loop(self) -> None:
        """Ensure the background event loop is running."""
        with self._lock:
            if self._loop is None or not self._loop.is_running():
                loop = asyncio.new_event_loop()
                started = threading.Event()
                self._loop = loop
                self._thread = threading.Thread(
                    target=self._run_loop, args=(loop, started), daemon=True, name="async-runner"
                )
                self._thread.start()
                started.wait()

    @staticmethod
    def _run_loop(loop: asyncio.AbstractEventLoop, started: threading.Event) -> None:
        asyncio.set_event_loop(loop)
        loop.call_soon(started.set)
        loop.run_forever()

    def run(self, coro: Coroutine[Any, Any, T], timeout: float = 120) -> T:
        """Run a coroutine on the persistent event loop.

        Args:
            coro: Coroutine to run.
            timeout: Seconds to wait for the result.

        Returns:
            Result of the coroutine.

        Raises:
            TimeoutError: No result within ``timeout``; the coroutine is cancelled.
        """
        self._ensure_loop()
        assert self._loop is not None  # Guaranteed by _ensure_loop
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        try:
            return future.result(timeout=timeout)
        except TimeoutError:
            future.cancel()
            raise


# Global async runner instance
_async_runner = AsyncRunner()


def run_async(coro, timeout: float = 120):
    """Run an async coroutine from sync Flask code.

    Args:
        coro: Coroutine to run.
        timeout: Seconds to wait for the result.

    Returns:
        Result of the coroutine.
    """
    return _async_runner.run(coro, timeout=timeout)


def create_app(test_config: dict | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        test_config: Optional config mapping; may supply ``FETCH_SERVICE``.

    Returns:
        Configured Flask application.
    """
    config = get_config()
    json_output = test_config is None and config.json_logging
    configure_logging(
        json_output=json_output, level=config.log_level, redact_urls=not config.dev_mode
    )

    app = Flask(__name__)
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY", "dev-secret-key"),
        MAX_CONTENT_LENGTH=config.max_upload_bytes,
    )
    if test_config is not None:
        app.config.update(test_config)

    if app.config.get("FETCH_SERVICE") is None:
        service = build_fetch_service(config)
        app.config["FETCH_SERVICE"] = service
        if not app.config.get("TESTING"):
            service.start()

    log.info("app_created", testing=app.config.get("TESTING", False), dev_mode=config.dev_mode)

    @app.before_request
    def bind_request_context():
        request_id = request.headers.get("X-Request-ID", "")[:64] or uuid.uuid4().hex
        bind_request(request_id, client_identifier(request.headers, request.remote_addr))

    @app.teardown_request
    def clear_request_context(exc):
        clear_request()

    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses."""
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        return response

    app.config["RUN_ASYNC"] = run_async

    app.register_blueprint(api_bp)

    return app


def main() -> None:
    """Run the Flask development server."""
    app = create_app()
    port = int(os.environ.get("PORT", 5001))
    app.run(host="0.0.0.0", port=port, debug=get_config().dev_mode)


if __name__ == "__main__":
    main()
