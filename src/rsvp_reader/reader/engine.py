"""Timer-driven word-by-word playback.

The engine owns exactly one pending advancement at a time. Every operation
that changes position, speed, sequence or play state cancels it before
applying its effect, then schedules the next one from the new state. Each
scheduled callback carries the generation it was created in, so a timer
that fires after being superseded does nothing.
"""

import threading
from collections.abc import Callable, Iterable
from typing import Protocol

import structlog

from .pacing import base_delay_ms, get_pause_multiplier
from .segments import DisplayUnit, SegmentType

log = structlog.get_logger()

DEFAULT_WPM = 300


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything with ``call_later``; an asyncio event loop qualifies."""

    def call_later(self, delay: float, callback: Callable[[], object]) -> TimerHandle: ...


class ThreadingScheduler:
    """Run each callback on its own daemon ``threading.Timer``."""

    def call_later(self, delay: float, callback: Callable[[], object]) -> TimerHandle:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class RSVPEngine:
    """Playback state machine over a fixed sequence of display units.

    States: idle (index 0, paused), playing, paused, completed. Completion
    stops the timer, calls ``on_complete`` once, then returns to idle.
    """

    def __init__(
        self,
        units: Iterable[DisplayUnit] = (),
        wpm: float = DEFAULT_WPM,
        on_complete: Callable[[], object] | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            units: Sequence to play.
            wpm: Base reading speed in words per minute.
            on_complete: Called once each time playback reaches the end.
            scheduler: Timer source; defaults to :class:`ThreadingScheduler`.
        """
        base_delay_ms(wpm)  # validates wpm
        self._units: tuple[DisplayUnit, ...] = tuple(units)
        self._wpm = wpm
        self._on_complete = on_complete
        self._scheduler = scheduler or ThreadingScheduler()

        self._lock = threading.RLock()
        self._index = 0
        self._playing = False
        self._pending: TimerHandle | None = None
        self._generation = 0

    # Derived state

    @property
    def units(self) -> tuple[DisplayUnit, ...]:
        return self._units

    @property
    def wpm(self) -> float:
        return self._wpm

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def is_playing(self) -> bool:
        return self._playing

    @property
    def has_pending(self) -> bool:
        """Whether an advancement is scheduled."""
        return self._pending is not None

    @property
    def progress(self) -> float:
        """Fraction of the sequence already shown, 0.0 when empty."""
        with self._lock:
            if not self._units:
                return 0.0
            return self._index / len(self._units)

    @property
    def time_remaining(self) -> float:
        """Seconds left from the current unit to the end, pauses included."""
        with self._lock:
            base = base_delay_ms(self._wpm)
            total_ms = sum(
                base * get_pause_multiplier(unit.type, unit.text)
                for unit in self._units[self._index :]
            )
        return total_ms / 1000

    @property
    def current_unit(self) -> DisplayUnit | None:
        with self._lock:
            if self._index < len(self._units):
                return self._units[self._index]
            return None

    @property
    def current_word(self) -> str:
        unit = self.current_unit
        return unit.text if unit else ""

    @property
    def current_word_type(self) -> SegmentType:
        unit = self.current_unit
        return unit.type if unit else SegmentType.NORMAL

    @property
    def current_section_title(self) -> str | None:
        unit = self.current_unit
        return unit.section_title if unit else None

    # Operations

    def toggle_play(self) -> None:
        """Start or pause; starting from the end rewinds to the beginning."""
        with self._lock:
            if not self._units:
                return
            if self._index >= len(self._units):
                self._index = 0
            self._playing = not self._playing
            self._reschedule()

    def play(self) -> None:
        with self._lock:
            if not self._playing:
                self.toggle_play()

    def pause(self) -> None:
        with self._lock:
            if self._playing:
                self.toggle_play()

    def restart(self) -> None:
        """Stop and rewind to the first unit."""
        with self._lock:
            self._cancel_pending()
            self._playing = False
            self._index = 0

    def skip_forward(self, count: int) -> None:
        with self._lock:
            self._seek(self._index + count)

    def skip_backward(self, count: int) -> None:
        with self._lock:
            self._seek(self._index - count)

    def set_current_index(self, index: int) -> None:
        with self._lock:
            self._seek(index)

    def set_wpm(self, wpm: float) -> None:
        """Change speed; a pending advancement is rescheduled at the new rate.

        Raises:
            ValueError: If ``wpm`` is not positive.
        """
        base_delay_ms(wpm)
        with self._lock:
            self._wpm = wpm
            self._reschedule()

    def set_units(self, units: Iterable[DisplayUnit], start_index: int = 0) -> None:
        """Replace the sequence, keeping the play state.

        Args:
            units: New sequence.
            start_index: Position to resume from, clamped into range.
        """
        with self._lock:
            self._cancel_pending()
            self._units = tuple(units)
            if not self._units:
                self._index = 0
                self._playing = False
                return
            self._index = min(max(start_index, 0), len(self._units) - 1)
            self._reschedule()

    def close(self) -> None:
        """Stop playback and drop any pending advancement."""
        with self._lock:
            self._cancel_pending()
            self._playing = False

    # Scheduling; callers hold self._lock

    def _seek(self, index: int) -> None:
        if not self._units:
            return
        self._index = min(max(index, 0), len(self._units) - 1)
        self._reschedule()

    def _cancel_pending(self) -> None:
        self._generation += 1
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _reschedule(self) -> None:
        self._cancel_pending()
        if not self._playing or self._index >= len(self._units):
            return

        unit = self._units[self._index]
        delay_ms = base_delay_ms(self._wpm) * get_pause_multiplier(unit.type, unit.text)
        generation = self._generation
        self._pending = self._scheduler.call_later(
            delay_ms / 1000, lambda: self._advance(generation)
        )

    def _advance(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or not self._playing:
                return
            self._pending = None
            self._index += 1
            if self._index < len(self._units):
                self._reschedule()
                return

            # Completed: index rests on len(units) while listeners are told.
            self._playing = False
            self._generation += 1
            completed_generation = self._generation

        log.debug("playback_completed", units=len(self._units))
        if self._on_complete is not None:
            self._on_complete()

        with self._lock:
            # Skip the rewind if the callback already moved the engine on.
            if completed_generation == self._generation and self._index >= len(self._units):
                self._index = 0
