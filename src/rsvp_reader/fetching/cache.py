"""Bounded, expiring cache of extracted fetch results."""

import time
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import structlog

from .base import FetchResult
from .store import SweepingStore

log = structlog.get_logger()


def normalize_url(url: str) -> str:
    """Canonical cache key for a URL.

    Drops the fragment, sorts query parameters and lower-cases the scheme
    and host, so equivalent URLs share one cache entry.

    Args:
        url: Absolute http(s) URL.

    Returns:
        Normalized URL string.
    """
    parts = urlsplit(url.strip())
    query = urlencode(sorted(parse_qsl(parts.query, keep_blank_values=True)))
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), parts.path or "/", query, "")
    )


@dataclass
class CacheEntry:
    """One cached result."""

    key: str
    payload: FetchResult
    stored_at: float


class FetchCache(SweepingStore):
    """Normalized-URL → FetchResult map with TTL and size bound."""

    def __init__(
        self,
        ttl: float = 3600.0,
        max_entries: int = 100,
        sweep_interval: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            ttl: Seconds an entry stays valid.
            max_entries: Capacity; oldest entries are evicted beyond it.
            sweep_interval: Seconds between background sweeps.
            clock: Monotonic time source.
        """
        super().__init__(sweep_interval=sweep_interval, clock=clock)
        self._ttl = ttl
        self._max_entries = max_entries
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def get(self, key: str) -> FetchResult | None:
        """Look up a result, treating expired entries as misses.

        Args:
            key: Normalized URL.

        Returns:
            Cached FetchResult, or None.
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if now - entry.stored_at > self._ttl:
                del self._entries[key]
                return None
            return entry.payload

    def set(self, key: str, result: FetchResult) -> None:
        """Store a result, evicting the oldest entries past capacity.

        Args:
            key: Normalized URL.
            result: Extracted result to cache.
        """
        now = self._clock()
        with self._lock:
            # Re-inserting moves the key to the end of the insertion order.
            self._entries.pop(key, None)
            self._entries[key] = CacheEntry(key=key, payload=result, stored_at=now)
            evicted = self._evict_overflow()
        if evicted:
            log.debug("cache_evicted", count=evicted)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def sweep(self) -> int:
        """Remove expired entries, then enforce the size bound."""
        now = self._clock()
        with self._lock:
            expired = [
                key
                for key, entry in self._entries.items()
                if now - entry.stored_at > self._ttl
            ]
            for key in expired:
                del self._entries[key]
            return len(expired) + self._evict_overflow()

    def _evict_overflow(self) -> int:
        """Drop oldest-stored entries until within capacity. Caller holds the lock."""
        overflow = len(self._entries) - self._max_entries
        if overflow <= 0:
            return 0
        oldest = sorted(self._entries.values(), key=lambda entry: entry.stored_at)
        for entry in oldest[:overflow]:
            del self._entries[entry.key]
        return overflow
