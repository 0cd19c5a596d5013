"""Timers ordered by expiration."""

from __future__ import annotations

import functools
import heapq
import threading
from typing import Any, List, Optional, Tuple

from .timer import Timer, TimerCallback
from .timestamp import Timestamp


class TimerQueue:
    """Keeps timers sorted by expiration and runs those that are due.

    When a loop is given, new timers are inserted through its
    ``run_in_loop`` so that insertion happens in the loop's thread.
    The loop asks ``earliest_expiration`` how long it may wait and calls
    ``handle_expired`` once that time has come.
    """

    def __init__(self, loop: Any = None) -> None:
        self._loop = loop
        self._timers: List[Tuple[int, int, Timer]] = []
        self._lock = threading.Lock()
        self._calling_expired_timers = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._timers)

    @property
    def calling_expired_timers(self) -> bool:
        return self._calling_expired_timers

    def add_timer(self, callback: TimerCallback, when: Timestamp, interval: float) -> Timer:
        """Schedule ``callback`` at ``when``, repeating every ``interval`` seconds if positive."""
        timer = Timer(callback, when, interval)
        if self._loop is None:
            self._insert(timer)
        else:
            self._loop.run_in_loop(functools.partial(self._insert, timer))
        return timer

    def earliest_expiration(self) -> Optional[Timestamp]:
        """The expiration of the next timer, or None when there is none."""
        with self._lock:
            if not self._timers:
                return None
            return self._timers[0][2].expiration

    def handle_expired(self, now: Timestamp) -> List[Timer]:
        """Run every timer due at ``now``, reschedule repeating ones, return those run."""
        expired = self._get_expired(now)
        self._calling_expired_timers = True
        try:
            for timer in expired:
                timer.run()
        finally:
            self._calling_expired_timers = False
        self._reset(expired)
        return expired

    def _get_expired(self, now: Timestamp) -> List[Timer]:
        limit = now.micro_seconds_since_epoch
        expired: List[Timer] = []
        with self._lock:
            while self._timers and self._timers[0][0] <= limit:
                expired.append(heapq.heappop(self._timers)[2])
        return expired

    def _reset(self, expired: List[Timer]) -> None:
        for timer in expired:
            if timer.repeat:
                timer.restart(Timestamp.now())
                self._insert(timer)

    def _insert(self, timer: Timer) -> bool:
        """Insert ``timer``; return whether it became the earliest."""
        when = timer.expiration
        with self._lock:
            earliest_changed = not self._timers or when < self._timers[0][2].expiration
            heapq.heappush(
                self._timers, (when.micro_seconds_since_epoch, timer.sequence, timer)
            )
        return earliest_changed