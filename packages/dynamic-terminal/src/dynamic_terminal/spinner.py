"""Spinner animation phase and the periodic timer driving spinner renders."""
from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)

_FRAMES = ["⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"]


class Spinner:
    """Cycles through braille frames, one step per advance()."""

    def __init__(self, frames: list[str] | None = None) -> None:
        self._frames = list(frames or _FRAMES)
        self._current_frame = 0

    @property
    def glyph(self) -> str:
        return self._frames[self._current_frame]

    def advance(self) -> str:
        self._current_frame = (self._current_frame + 1) % len(self._frames)
        return self.glyph


class TimerState(Enum):
    DISARMED = "disarmed"
    ARMED = "armed"


class SpinnerTimer:
    """
    Periodic trigger calling ``on_tick`` every ``interval_ms`` while armed.

    Each arm() starts a new generation; a pending timer from an older
    generation exits without firing, so disarm() followed by arm() never
    leaves two periodic triggers running.
    """

    def __init__(self, on_tick: Callable[[], None], interval_ms: int = 100) -> None:
        self._on_tick = on_tick
        self.interval_ms = interval_ms
        self._state = TimerState.DISARMED
        self._generation = 0
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def armed(self) -> bool:
        return self._state is TimerState.ARMED

    def arm(self) -> bool:
        """Start ticking. Returns False if already armed."""
        with self._lock:
            if self._state is TimerState.ARMED:
                return False
            self._state = TimerState.ARMED
            self._generation += 1
            self._schedule(self._generation)
        logger.debug("Spinner timer armed (%d ms)", self.interval_ms)
        return True

    def disarm(self) -> bool:
        """Stop ticking. Returns False if it was not armed."""
        with self._lock:
            if self._state is TimerState.DISARMED:
                return False
            self._state = TimerState.DISARMED
            self._generation += 1
            if self._timer:
                self._timer.cancel()
                self._timer = None
        logger.debug("Spinner timer disarmed")
        return True

    def _schedule(self, generation: int) -> None:
        self._timer = threading.Timer(self.interval_ms / 1000.0, self._fire, args=(generation,))
        self._timer.daemon = True
        self._timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
        try:
            self._on_tick()
        finally:
            with self._lock:
                if generation == self._generation:
                    self._schedule(generation)
