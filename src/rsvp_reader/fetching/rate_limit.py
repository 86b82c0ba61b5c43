"""Per-client fixed-window request limiting for URL fetches."""

import math
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass

import structlog

from .store import SweepingStore

log = structlog.get_logger()

UNKNOWN_CLIENT = "unknown"


@dataclass
class RateLimitRecord:
    """Request count for one client inside its current window."""

    identifier: str
    count: int
    window_reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of counting one request against the limit."""

    allowed: bool
    remaining: int
    limit: int
    retry_after: int = 0


def client_identifier(headers: Mapping[str, str], remote_addr: str | None = None) -> str:
    """Derive the rate-limit key for a request.

    Prefers the first X-Forwarded-For hop, then X-Real-IP, then the
    connection address. Headers are client-controlled unless a trusted
    proxy rewrites them, so this is an abuse deterrent only.

    Args:
        headers: Request headers (case-insensitive mapping).
        remote_addr: Socket peer address, if known.

    Returns:
        Identifier string.
    """
    forwarded = headers.get("X-Forwarded-For", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop

    real_ip = headers.get("X-Real-IP", "").strip()
    if real_ip:
        return real_ip

    return remote_addr or UNKNOWN_CLIENT


class RateLimiter(SweepingStore):
    """Fixed-window counter keyed by client identifier."""

    def __init__(
        self,
        max_requests: int = 10,
        window: float = 60.0,
        sweep_interval: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the limiter.

        Args:
            max_requests: Requests allowed per identifier per window.
            window: Window length in seconds.
            sweep_interval: Seconds between background purges.
            clock: Monotonic time source.
        """
        super().__init__(sweep_interval=sweep_interval, clock=clock)
        self._max_requests = max_requests
        self._window = window
        self._records: dict[str, RateLimitRecord] = {}

    @property
    def max_requests(self) -> int:
        return self._max_requests

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def check(self, identifier: str) -> RateLimitDecision:
        """Count a request and decide whether it may proceed.

        Args:
            identifier: Client key from :func:`client_identifier`.

        Returns:
            RateLimitDecision; ``remaining`` is 0 once the cap is hit.
        """
        now = self._clock()
        with self._lock:
            record = self._records.get(identifier)

            if record is None or now > record.window_reset_at:
                self._records[identifier] = RateLimitRecord(
                    identifier=identifier,
                    count=1,
                    window_reset_at=now + self._window,
                )
                return RateLimitDecision(
                    allowed=True,
                    remaining=max(self._max_requests - 1, 0),
                    limit=self._max_requests,
                )

            if record.count >= self._max_requests:
                retry_after = max(math.ceil(record.window_reset_at - now), 1)
                decision = RateLimitDecision(
                    allowed=False,
                    remaining=0,
                    limit=self._max_requests,
                    retry_after=retry_after,
                )
            else:
                record.count += 1
                decision = RateLimitDecision(
                    allowed=True,
                    remaining=self._max_requests - record.count,
                    limit=self._max_requests,
                )

        if not decision.allowed:
            log.info("rate_limited", identifier=identifier, retry_after=decision.retry_after)
        return decision

    def sweep(self) -> int:
        """Purge records whose window ended more than one window ago."""
        now = self._clock()
        with self._lock:
            stale = [
                key
                for key, record in self._records.items()
                if now > record.window_reset_at + self._window
            ]
            for key in stale:
                del self._records[key]
        return len(stale)
