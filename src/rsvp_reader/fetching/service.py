"""URL-to-readable-text pipeline behind the fetch endpoint."""

import asyncio
from dataclasses import dataclass

import structlog

from ..config import Config
from ..errors import FetchError, InternalError, InvalidInput, PolicyRejected, RateLimited
from .base import FetchResult, ProxyTransport
from .cache import FetchCache, normalize_url
from .extractor import ReadableTextExtractor
from .fetcher import ContentFetcher
from .rate_limit import RateLimiter
from .ssrf import validate_url

log = structlog.get_logger()


@dataclass
class FetchOutcome:
    """A successful fetch plus the metadata the API reports with it."""

    result: FetchResult
    from_cache: bool
    remaining: int
    limit: int

    def to_dict(self) -> dict:
        body = self.result.to_dict()
        if self.from_cache:
            body["fromCache"] = True
        return body


class FetchService:
    """Validate, rate-limit, cache, fetch and extract one URL.

    Steps short-circuit on the first failure. Every failure leaves as a
    :class:`~rsvp_reader.errors.FetchError`; anything unexpected is logged
    and replaced by :class:`~rsvp_reader.errors.InternalError`.
    """

    def __init__(
        self,
        fetcher: ContentFetcher,
        extractor: ReadableTextExtractor,
        cache: FetchCache,
        rate_limiter: RateLimiter,
        dev_mode: bool = False,
    ) -> None:
        self._fetcher = fetcher
        self._extractor = extractor
        self._cache = cache
        self._rate_limiter = rate_limiter
        self._dev_mode = dev_mode

    @property
    def cache(self) -> FetchCache:
        return self._cache

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    def start(self) -> None:
        """Start the background sweeps of the cache and rate limiter."""
        self._cache.start()
        self._rate_limiter.start()

    def stop(self) -> None:
        self._cache.stop()
        self._rate_limiter.stop()

    async def fetch(self, url: object, identifier: str) -> FetchOutcome:
        """Run the full pipeline for one request.

        Args:
            url: The ``url`` field from the request body, unvalidated.
            identifier: Rate-limit key of the caller.

        Returns:
            FetchOutcome for the extracted or cached result.

        Raises:
            FetchError: Any expected failure, already user-safe.
        """
        try:
            return await self._fetch(url, identifier)
        except FetchError as e:
            self._log_failure(e, url)
            raise
        except Exception as e:
            if self._dev_mode:
                log.exception("fetch_unexpected_error", url=url, error=str(e))
            else:
                log.error("fetch_unexpected_error", error_type=type(e).__name__)
            raise InternalError() from e

    async def _fetch(self, url: object, identifier: str) -> FetchOutcome:
        decision = self._rate_limiter.check(identifier)
        if not decision.allowed:
            raise RateLimited(retry_after=decision.retry_after, limit=decision.limit)

        if not isinstance(url, str) or not url.strip():
            raise InvalidInput()
        url = url.strip()

        validation = validate_url(url)
        if not validation.valid:
            raise PolicyRejected(validation.error)

        key = normalize_url(url)
        cached = self._cache.get(key)
        if cached is not None:
            log.info("fetch_cache_hit", url=key)
            return FetchOutcome(cached, True, decision.remaining, decision.limit)

        raw = await self._fetcher.fetch(url)
        result = await asyncio.to_thread(self._extractor.extract, raw.text, raw.url)

        self._cache.set(key, result)
        log.info(
            "fetch_completed",
            url=key,
            via_fallback=raw.via_fallback,
            words=result.length,
        )
        return FetchOutcome(result, False, decision.remaining, decision.limit)

    def _log_failure(self, error: FetchError, url: object) -> None:
        if self._dev_mode:
            cause = error.__cause__
            log.warning(
                "fetch_rejected",
                kind=type(error).__name__,
                status=error.status_code,
                url=url,
                cause=repr(cause) if cause is not None else None,
            )
        else:
            log.info("fetch_rejected", kind=type(error).__name__, status=error.status_code)


def build_fetch_service(config: Config) -> FetchService:
    """Wire a FetchService from configuration.

    Args:
        config: Application configuration.

    Returns:
        FetchService with its stores not yet sweeping.
    """
    fallback = ProxyTransport(config.fallback_proxy) if config.fallback_proxy else None
    return FetchService(
        fetcher=ContentFetcher(
            timeout=config.fetch_timeout,
            max_bytes=config.max_response_bytes,
            fallback=fallback,
        ),
        extractor=ReadableTextExtractor(),
        cache=FetchCache(
            ttl=config.cache_ttl,
            max_entries=config.cache_max_entries,
            sweep_interval=config.sweep_interval,
        ),
        rate_limiter=RateLimiter(
            max_requests=config.rate_limit_requests,
            window=config.rate_limit_window,
            sweep_interval=config.sweep_interval,
        ),
        dev_mode=config.dev_mode,
    )
