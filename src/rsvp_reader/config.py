"""Configuration management."""

import os

# Global singleton instance
_config_instance: "Config | None" = None

_ENV_PREFIX = "RSVP_READER_"

DEFAULT_FALLBACK_PROXY = "https://api.allorigins.win/raw?url={url}"


def _env(name: str, default: str) -> str:
    return os.environ.get(_ENV_PREFIX + name, default)


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name, "true" if default else "false")
    return raw.lower() in ("true", "1", "yes")


def _env_int(name: str, default: int) -> int:
    try:
        return int(_env(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(_env(name, str(default)))
    except ValueError:
        return default


class Config:
    """Application configuration."""

    def __init__(self) -> None:
        """Initialize configuration with defaults and env overrides."""
        # Logging
        self._log_level = _env("LOG_LEVEL", "INFO")
        self._json_logging = _env_bool("JSON_LOGGING", True)
        self._dev_mode = _env_bool("DEV_MODE", False)

        # Outbound fetch policy
        self._fetch_timeout = _env_float("FETCH_TIMEOUT", 10.0)
        self._max_response_bytes = _env_int("MAX_RESPONSE_BYTES", 5 * 1024 * 1024)
        self._fallback_proxy = _env("FALLBACK_PROXY", DEFAULT_FALLBACK_PROXY).strip()

        # Abuse limits
        self._rate_limit_requests = _env_int("RATE_LIMIT_REQUESTS", 10)
        self._rate_limit_window = _env_float("RATE_LIMIT_WINDOW", 60.0)

        # Cache
        self._cache_ttl = _env_float("CACHE_TTL", 3600.0)
        self._cache_max_entries = _env_int("CACHE_MAX_ENTRIES", 100)
        self._sweep_interval = _env_float("SWEEP_INTERVAL", 600.0)

        # Uploads
        self._max_upload_bytes = _env_int("MAX_UPLOAD_BYTES", 10 * 1024 * 1024)

    @property
    def log_level(self) -> str:
        """Logging level."""
        return self._log_level

    @property
    def json_logging(self) -> bool:
        """Whether to use JSON logging format."""
        return self._json_logging

    @property
    def dev_mode(self) -> bool:
        """Whether internal error detail is written to the logs."""
        return self._dev_mode

    @property
    def fetch_timeout(self) -> float:
        """Timeout in seconds for each outbound request."""
        return self._fetch_timeout

    @property
    def max_response_bytes(self) -> int:
        """Largest response body accepted from a remote site."""
        return self._max_response_bytes

    @property
    def fallback_proxy(self) -> str | None:
        """URL template for the fallback transport, or None when disabled."""
        return self._fallback_proxy or None

    @property
    def rate_limit_requests(self) -> int:
        """Fetch requests allowed per client per window."""
        return self._rate_limit_requests

    @property
    def rate_limit_window(self) -> float:
        """Rate-limit window length in seconds."""
        return self._rate_limit_window

    @property
    def cache_ttl(self) -> float:
        """Seconds a fetched result stays cached."""
        return self._cache_ttl

    @property
    def cache_max_entries(self) -> int:
        """Maximum number of cached results."""
        return self._cache_max_entries

    @property
    def sweep_interval(self) -> float:
        """Seconds between background cache and rate-limit sweeps."""
        return self._sweep_interval

    @property
    def max_upload_bytes(self) -> int:
        """Largest request body accepted by the app."""
        return self._max_upload_bytes


def get_config() -> Config:
    """Get the global configuration instance.

    Returns:
        The singleton Config instance.
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config()
    return _config_instance
