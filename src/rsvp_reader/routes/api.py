"""API routes blueprint."""

from importlib.metadata import PackageNotFoundError, version
from pathlib import PurePath

import structlog
from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import RequestEntityTooLarge
from werkzeug.utils import secure_filename

from ..errors import FetchError, InternalError, RateLimited
from ..fetching import client_identifier
from ..reader import EpubError, extract_epub_text, text_to_units
from ..reader.pacing import (
    base_delay_ms,
    calculate_reading_time,
    get_pause_multiplier,
    optimal_recognition_point,
)

log = structlog.get_logger()

api_bp = Blueprint("api", __name__, url_prefix="/api")

TEXT_EXTENSIONS = (".txt", ".md", ".markdown")


def _get_run_async():
    """Get the run_async function from the app context."""
    return current_app.config.get("RUN_ASYNC")


def _get_fetch_service():
    return current_app.config["FETCH_SERVICE"]


def _package_version() -> str:
    try:
        return version("rsvp-reader")
    except PackageNotFoundError:
        return "0.0.0"


def _error_response(error: FetchError):
    response = jsonify(error.to_dict())
    response.status_code = error.status_code
    if isinstance(error, RateLimited):
        response.headers["Retry-After"] = str(error.retry_after)
        response.headers["X-RateLimit-Limit"] = str(error.limit)
        response.headers["X-RateLimit-Remaining"] = "0"
    return response


@api_bp.app_errorhandler(RequestEntityTooLarge)
def upload_too_large(e):
    limit = current_app.config.get("MAX_CONTENT_LENGTH")
    log.info("upload_rejected", reason="too_large", limit=limit)
    return jsonify({"error": "The file is too large.", "success": False}), 413


@api_bp.route("/health")
def health():
    """GET /api/health - Health check endpoint."""
    return jsonify({"status": "ok", "version": _package_version()})


@api_bp.route("/fetch-url", methods=["POST"])
def fetch_url():
    """POST /api/fetch-url - Load a page and return its readable text.

    Expects ``{"url": ...}`` as JSON. Failures answer with the status and
    body of the matching FetchError.
    """
    run_async = _get_run_async()
    service = _get_fetch_service()

    data = request.get_json(silent=True)
    url = data.get("url") if isinstance(data, dict) else None
    identifier = client_identifier(request.headers, request.remote_addr)

    try:
        outcome = run_async(service.fetch(url, identifier))
    except FetchError as e:
        return _error_response(e)
    except Exception as e:
        log.error("fetch_url_failed", error_type=type(e).__name__)
        return _error_response(InternalError())

    response = jsonify(outcome.to_dict())
    response.headers["X-RateLimit-Remaining"] = str(outcome.remaining)
    return response


@api_bp.route("/parse", methods=["POST"])
def parse_text():
    """POST /api/parse - Turn text into the timed display sequence.

    Each unit carries its pause multiplier and focal letter index so a
    renderer can play it without parsing anything itself.
    """
    data = request.get_json(silent=True) or {}
    text = data.get("text") if isinstance(data, dict) else None
    if not isinstance(text, str) or not text.strip():
        return jsonify({"error": "No text provided", "success": False}), 400

    wpm = data.get("wpm", 300)
    try:
        base = base_delay_ms(float(wpm))
    except (TypeError, ValueError):
        return jsonify({"error": "wpm must be a positive number", "success": False}), 400

    units = []
    total_ms = 0.0
    for unit in text_to_units(text):
        pause = get_pause_multiplier(unit.type, unit.text)
        total_ms += base * pause
        units.append({**unit.to_dict(), "pause": pause, "orp": optimal_recognition_point(unit.text)})

    log.info("text_parsed", units=len(units), chars=len(text))
    return jsonify(
        {
            "units": units,
            "count": len(units),
            "estimatedSeconds": round(total_ms / 1000, 1),
            "plainSeconds": calculate_reading_time(text, float(wpm)),
            "success": True,
        }
    )


@api_bp.route("/upload", methods=["POST"])
def upload():
    """POST /api/upload - Read text from an uploaded .txt, .md or .epub file."""
    file = request.files.get("file")
    if file is None or not file.filename:
        return jsonify({"error": "No file provided", "success": False}), 400

    filename = secure_filename(file.filename)
    suffix = PurePath(filename).suffix.lower()

    if suffix in TEXT_EXTENSIONS:
        content = file.read().decode("utf-8-sig", errors="replace")
        if not content.strip():
            return jsonify({"error": "The file is empty", "success": False}), 400
        log.info("upload_read", kind="text", chars=len(content))
        return jsonify(
            {"title": PurePath(filename).stem or filename, "content": content, "success": True}
        )

    if suffix == ".epub":
        try:
            book = extract_epub_text(file.read())
        except EpubError as e:
            log.info("upload_rejected", reason="bad_epub", error=str(e))
            return jsonify({"error": str(e), "success": False}), 400
        return jsonify(
            {
                "title": book.metadata.title,
                "content": book.full_text,
                "chapters": [
                    {"title": chapter.title, "index": chapter.index} for chapter in book.chapters
                ],
                "metadata": book.metadata.to_dict(),
                "success": True,
            }
        )

    return jsonify({"error": "Unsupported file type", "success": False}), 400
