"""Microsecond-resolution points in time."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import ClassVar

MICROSECONDS_PER_SECOND = 1_000_000


@dataclass(frozen=True, order=True)
class Timestamp:
    """A point in time as microseconds since the Unix epoch.

    A value of zero marks an invalid (unset) timestamp.
    """

    micro_seconds_since_epoch: int = 0

    MICROSECONDS_PER_SECOND: ClassVar[int] = MICROSECONDS_PER_SECOND

    @classmethod
    def now(cls) -> "Timestamp":
        """Return the current wall-clock time."""
        return cls(time.time_ns() // 1000)

    @classmethod
    def invalid(cls) -> "Timestamp":
        """Return the zero timestamp."""
        return cls()

    @property
    def seconds_since_epoch(self) -> int:
        """Whole seconds since the epoch, truncated toward zero."""
        whole = abs(self.micro_seconds_since_epoch) // MICROSECONDS_PER_SECOND
        return whole if self.micro_seconds_since_epoch >= 0 else -whole


def add_time(timestamp: Timestamp, seconds: float) -> Timestamp:
    """Return ``timestamp`` moved by ``seconds``, truncated to microseconds."""
    delta = int(seconds * MICROSECONDS_PER_SECOND)
    return Timestamp(timestamp.micro_seconds_since_epoch + delta)