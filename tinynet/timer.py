"""A single scheduled callback."""

from __future__ import annotations

import itertools
from typing import Callable

from .timestamp import Timestamp, add_time

TimerCallback = Callable[[], None]

_sequence = itertools.count(1)


class Timer:
    """A callback, its next expiration and its repeat interval.

    An interval of zero or less makes a one-shot timer.
    """

    __slots__ = ("_callback", "_expiration", "_interval", "_repeat", "_sequence")

    def __init__(self, callback: TimerCallback, when: Timestamp, interval: float) -> None:
        self._callback = callback
        self._expiration = when
        self._interval = interval
        self._repeat = interval > 0.0
        self._sequence = next(_sequence)

    @property
    def expiration(self) -> Timestamp:
        return self._expiration

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def repeat(self) -> bool:
        return self._repeat

    @property
    def sequence(self) -> int:
        """Creation order, used to break ties between equal expirations."""
        return self._sequence

    def run(self) -> None:
        self._callback()

    def restart(self, now: Timestamp) -> None:
        """Schedule the next run one interval after ``now``; one-shot timers expire to invalid."""
        if self._repeat:
            self._expiration = add_time(now, self._interval)
        else:
            self._expiration = Timestamp.invalid()

    def __repr__(self) -> str:
        return (
            f"Timer(expiration={self._expiration.micro_seconds_since_epoch}, "
            f"interval={self._interval})"
        )