"""Server-side retrieval of readable text from remote pages."""

from .base import FallbackTransport, FetchResult, ProxyTransport, RawResponse
from .cache import FetchCache, normalize_url
from .extractor import ReadableTextExtractor
from .fetcher import ContentFetcher
from .rate_limit import RateLimiter, client_identifier
from .service import FetchOutcome, FetchService, build_fetch_service
from .ssrf import ValidationResult, validate_url

__all__ = [
    "ContentFetcher",
    "FallbackTransport",
    "FetchCache",
    "FetchOutcome",
    "FetchResult",
    "FetchService",
    "ProxyTransport",
    "RateLimiter",
    "RawResponse",
    "ReadableTextExtractor",
    "ValidationResult",
    "build_fetch_service",
    "client_identifier",
    "normalize_url",
    "validate_url",
]
