"""Shared plumbing for the in-process fetch stores."""

import threading
import time
from collections.abc import Callable

import structlog

log = structlog.get_logger()


class SweepingStore:
    """A lock-guarded in-memory store with an optional background sweep.

    Subclasses keep their map behind ``self._lock`` and implement
    :meth:`sweep`. The lock is only held for plain map operations, never
    across I/O. The sweep thread is owned by the store and started
    explicitly, so tests can drive :meth:`sweep` by hand.
    """

    def __init__(
        self,
        sweep_interval: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the store.

        Args:
            sweep_interval: Seconds between background sweeps.
            clock: Monotonic time source, injectable for tests.
        """
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def sweep(self) -> int:
        """Drop stale entries.

        Returns:
            Number of entries removed.
        """
        raise NotImplementedError

    @property
    def running(self) -> bool:
        """Whether the background sweep thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background sweep thread if it is not running yet."""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, daemon=True, name=f"{type(self).__name__}-sweep"
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop the background sweep thread and wait for it to exit."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None

    def _run(self) -> None:
        while not self._stop_event.wait(self._sweep_interval):
            removed = self.sweep()
            if removed:
                log.info("store_swept", store=type(self).__name__, removed=removed)
