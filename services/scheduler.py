"""Timer that fires once at every local midnight."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from services.clock import Clock, SystemClock, next_local_midnight, seconds_between

logger = logging.getLogger(__name__)

# Timers may wake marginally early; a late firing is harmless because the
# rollover check compares dates.
_MIDNIGHT_GRACE_SECONDS = 0.5
_MIN_DELAY_SECONDS = 0.001


class DayBoundaryScheduler:
    """Invoke ``callback`` just after each local midnight until stopped.

    A fresh one-shot timer is armed after every firing so the delay is always
    computed against the real next midnight, including on 23h and 25h days.
    """

    def __init__(
        self,
        callback: Callable[[], None],
        clock: Optional[Clock] = None,
        timer_factory: Callable[[float, Callable[[], None]], threading.Timer] = threading.Timer,
    ) -> None:
        self._callback = callback
        self._clock = clock or SystemClock()
        self._timer_factory = timer_factory
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._stopped = True
        self._generation = 0

    @property
    def is_running(self) -> bool:
        with self._lock:
            return not self._stopped

    def seconds_until_next_midnight(self) -> float:
        now = self._clock.now()
        target = next_local_midnight(now, self._clock.tz)
        return max(seconds_between(now, target), _MIN_DELAY_SECONDS) + _MIDNIGHT_GRACE_SECONDS

    def start(self) -> None:
        with self._lock:
            if not self._stopped:
                return
            self._stopped = False
            self._generation += 1
            self._arm(self._generation)

    def stop(self) -> None:
        with self._lock:
            self._stopped = True
            self._generation += 1
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def _current(self, generation: int) -> bool:
        return not self._stopped and generation == self._generation

    def _arm(self, generation: int) -> None:
        delay = self.seconds_until_next_midnight()
        timer = self._timer_factory(delay, lambda: self._fire(generation))
        timer.daemon = True
        self._timer = timer
        timer.start()
        logger.debug("Day boundary check scheduled", extra={"delay_seconds": delay})

    def _fire(self, generation: int) -> None:
        # A firing left over from before a stop/start cycle must not re-arm.
        with self._lock:
            if not self._current(generation):
                return
        try:
            self._callback()
        except Exception:  # noqa: BLE001 - the loop must survive a failed rollover
            logger.exception("Day boundary callback failed")
        with self._lock:
            if not self._current(generation):
                return
            self._arm(generation)
