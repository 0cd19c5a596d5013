"""A pausable stopwatch on a monotonic clock."""

from __future__ import annotations

import enum
import time
from typing import Callable, Union


class TimeUnit(enum.Enum):
    """Units a stopwatch can report in."""

    NANOSECONDS = "ns"
    MICROSECONDS = "us"
    MILLISECONDS = "ms"
    SECONDS = "s"
    MINUTES = "min"
    HOURS = "h"

    @property
    def nanoseconds(self) -> int:
        return _UNIT_NS[self]


_UNIT_NS = {
    TimeUnit.NANOSECONDS: 1,
    TimeUnit.MICROSECONDS: 1_000,
    TimeUnit.MILLISECONDS: 1_000_000,
    TimeUnit.SECONDS: 1_000_000_000,
    TimeUnit.MINUTES: 60_000_000_000,
    TimeUnit.HOURS: 3_600_000_000_000,
}


class Stopwatch:
    """Measures elapsed time across start/stop pauses until reset."""

    def __init__(
        self,
        start: bool = False,
        clock: Callable[[], int] = time.monotonic_ns,
    ) -> None:
        self._clock = clock
        self._started = False
        self._paused = False
        self._reference = clock()
        self._accumulated = 0
        if start:
            self.start()

    @property
    def started(self) -> bool:
        return self._started

    @property
    def paused(self) -> bool:
        return self._paused

    def start(self) -> None:
        """Start a fresh measurement, or resume a paused one."""
        if not self._started:
            self._started = True
            self._paused = False
            self._accumulated = 0
            self._reference = self._clock()
        elif self._paused:
            self._reference = self._clock()
            self._paused = False

    def stop(self) -> None:
        """Pause, keeping the time measured so far."""
        if self._started and not self._paused:
            self._accumulated += self._clock() - self._reference
            self._paused = True

    def reset(self) -> None:
        """Return a started stopwatch to the unstarted state."""
        if self._started:
            self._started = False
            self._paused = False
            self._reference = self._clock()
            self._accumulated = 0

    def count(self, unit: Union[TimeUnit, str] = TimeUnit.MILLISECONDS) -> int:
        """Return the elapsed time in whole ``unit``s."""
        unit = TimeUnit(unit)
        if not self._started:
            return 0
        elapsed = self._accumulated
        if not self._paused:
            elapsed += self._clock() - self._reference
        return elapsed // unit.nanoseconds