from __future__ import annotations

import threading
import time
from enum import Enum
from typing import Callable

DEFAULT_WAIT_SECONDS = 0.05


class FlushState(str, Enum):
    IDLE = "idle"
    COOLING = "cooling"


class FlushDebouncer:
    """
    Leading-edge debounce as an explicit state machine.

      IDLE    --request()-->  COOLING   request() returns True: flush now
      COOLING --request()-->  COOLING   returns False, deadline pushed to now + wait
      COOLING --deadline-->   IDLE      evaluated lazily against the clock

    No timer thread is involved; the deadline is the only timer state and it is
    owned by whoever owns the debouncer.
    """

    def __init__(self, wait: float = DEFAULT_WAIT_SECONDS, *, clock: Callable[[], float] = time.monotonic):
        if wait < 0:
            raise ValueError(f"wait must be >= 0, got {wait}")
        self._wait = float(wait)
        self._clock = clock
        self._deadline: float | None = None
        self._lock = threading.Lock()

    @property
    def wait(self) -> float:
        return self._wait

    @property
    def state(self) -> FlushState:
        with self._lock:
            return self._state_at(self._clock())

    def _state_at(self, now: float) -> FlushState:
        if self._deadline is not None and now < self._deadline:
            return FlushState.COOLING
        self._deadline = None
        return FlushState.IDLE

    def request(self) -> bool:
        """Register a flush request; True means the caller should flush now."""
        with self._lock:
            now = self._clock()
            fire = self._state_at(now) is FlushState.IDLE
            self._deadline = now + self._wait
            return fire

    def reset(self) -> None:
        with self._lock:
            self._deadline = None
