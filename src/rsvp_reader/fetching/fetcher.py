"""Outbound page retrieval with redirect, size and timeout policy."""

import asyncio
from urllib.parse import urljoin

import httpx
import structlog

from ..errors import FetchTimeout, NetworkError, RedirectBlocked, TooLarge
from .base import FallbackTransport, RawResponse
from .ssrf import validate_url

log = structlog.get_logger()

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})


class _UpstreamStatus(Exception):
    """The direct request completed with a non-success status."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"upstream status {status_code}")
        self.status_code = status_code


class ContentFetcher:
    """Fetch one page, directly or through a fallback transport.

    Automatic redirects are disabled. A single redirect is honoured after its
    target passes :func:`validate_url`; a second one is refused. Bodies are
    streamed and abandoned as soon as they exceed ``max_bytes``.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        max_bytes: int = 5 * 1024 * 1024,
        fallback: FallbackTransport | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        user_agent: str = USER_AGENT,
    ) -> None:
        """Initialize the fetcher.

        Args:
            timeout: Seconds allowed for each request, body included.
            max_bytes: Largest body accepted.
            fallback: Secondary route used when the direct request fails.
            transport: httpx transport override (tests use MockTransport).
            user_agent: User-Agent header sent with every request.
        """
        self._timeout = timeout
        self._max_bytes = max_bytes
        self._fallback = fallback
        self._transport = transport
        self._user_agent = user_agent

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout,
            follow_redirects=False,
            transport=self._transport,
            headers={
                "User-Agent": self._user_agent,
                "Accept": "text/html,application/xhtml+xml,text/plain;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.9",
            },
        )

    async def fetch(self, url: str) -> RawResponse:
        """Retrieve a page body.

        Args:
            url: URL that already passed :func:`validate_url`.

        Returns:
            RawResponse with the decoded body.

        Raises:
            FetchTimeout: The direct or fallback request timed out.
            RedirectBlocked: A redirect target was disallowed, or a second
                redirect was seen.
            TooLarge: The body exceeds the size limit.
            NetworkError: Connection failure or non-success status.
        """
        log.info("fetch_started", url=url)

        async with self._client() as client:
            try:
                return await self._fetch_direct(client, url)
            except (TimeoutError, httpx.TimeoutException) as e:
                log.warning("fetch_timeout", url=url, path="direct")
                raise FetchTimeout() from e
            except _UpstreamStatus as e:
                reason = f"status {e.status_code}"
                message = f"The site responded with status {e.status_code}."
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                reason = type(e).__name__
                message = None

            if self._fallback is None:
                log.warning("fetch_failed", url=url, reason=reason)
                raise NetworkError(message)

            log.warning(
                "direct_fetch_failed", url=url, reason=reason, fallback=self._fallback.name
            )
            return await self._fetch_fallback(client, url)

    async def _fetch_direct(self, client: httpx.AsyncClient, url: str) -> RawResponse:
        response, body = await self._get(client, url)

        if response.status_code in REDIRECT_STATUSES:
            url = self._redirect_target(url, response)
            response, body = await self._get(client, url)
            if response.status_code in REDIRECT_STATUSES:
                log.warning("redirect_chain_refused", url=url)
                raise RedirectBlocked("The page redirected more than once.")

        if not response.is_success:
            raise _UpstreamStatus(response.status_code)

        return RawResponse(
            url=url,
            status_code=response.status_code,
            text=self._decode(response, body),
            content_type=response.headers.get("Content-Type", ""),
        )

    async def _fetch_fallback(self, client: httpx.AsyncClient, url: str) -> RawResponse:
        assert self._fallback is not None  # Checked by fetch()
        proxied = self._fallback.proxied_url(url)

        try:
            response, body = await self._get(client, proxied)
        except (TimeoutError, httpx.TimeoutException) as e:
            log.warning("fetch_timeout", url=url, path="fallback")
            raise FetchTimeout(via_fallback=True) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            log.warning("fallback_fetch_failed", url=url, reason=type(e).__name__)
            raise NetworkError() from e

        if not response.is_success:
            log.warning("fallback_fetch_failed", url=url, reason=f"status {response.status_code}")
            raise NetworkError()

        log.info("fallback_fetch_succeeded", url=url, transport=self._fallback.name)
        return RawResponse(
            url=url,
            status_code=response.status_code,
            text=self._decode(response, body),
            content_type=response.headers.get("Content-Type", ""),
            via_fallback=True,
        )

    async def _get(self, client: httpx.AsyncClient, url: str) -> tuple[httpx.Response, bytes]:
        """Issue one GET and read its body under the size cap.

        Redirect responses are returned without reading their body.
        """
        async with asyncio.timeout(self._timeout):
            async with client.stream("GET", url) as response:
                if response.status_code in REDIRECT_STATUSES:
                    return response, b""

                declared = response.headers.get("Content-Length", "")
                if declared.isdigit() and int(declared) > self._max_bytes:
                    log.warning("response_too_large", url=url, declared=int(declared))
                    raise TooLarge()

                chunks: list[bytes] = []
                received = 0
                async for chunk in response.aiter_bytes():
                    received += len(chunk)
                    if received > self._max_bytes:
                        log.warning("response_too_large", url=url, received=received)
                        raise TooLarge()
                    chunks.append(chunk)

                return response, b"".join(chunks)

    def _redirect_target(self, url: str, response: httpx.Response) -> str:
        location = response.headers.get("Location", "").strip()
        if not location:
            raise RedirectBlocked("The page redirected without a destination.")

        target = urljoin(url, location)
        result = validate_url(target)
        if not result.valid:
            log.warning("redirect_blocked", url=url, target=target, reason=result.error)
            raise RedirectBlocked()

        log.info("redirect_followed", url=url, target=target)
        return target

    @staticmethod
    def _decode(response: httpx.Response, body: bytes) -> str:
        encoding = response.charset_encoding or "utf-8"
        try:
            return body.decode(encoding, errors="replace")
        except LookupError:
            return body.decode("utf-8", errors="replace")
