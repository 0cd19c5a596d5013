"""A pool of loop threads handing out loops round-robin."""

from __future__ import annotations

from typing import List, Optional

from .event_loop import EventLoop
from .event_loop_thread import EventLoopThread, ThreadInitCallback


class EventLoopThreadPool:
    """Sub-loops for a base loop; with no threads the base loop does all work."""

    def __init__(self, base_loop: EventLoop, name: str = "") -> None:
        self._base_loop = base_loop
        self._name = name
        self._started = False
        self._num_threads = 0
        self._next = 0
        self._threads: List[EventLoopThread] = []
        self._loops: List[EventLoop] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def started(self) -> bool:
        return self._started

    @property
    def num_threads(self) -> int:
        return self._num_threads

    @num_threads.setter
    def num_threads(self, value: int) -> None:
        if value < 0:
            raise ValueError("number of threads must not be negative")
        self._num_threads = value

    def start(self, callback: Optional[ThreadInitCallback] = None) -> None:
        """Start the threads, each running its own loop named ``<name><i>``."""
        self._started = True
        for i in range(self._num_threads):
            thread = EventLoopThread(callback, f"{self._name}{i}")
            self._threads.append(thread)
            self._loops.append(thread.start_loop())
        if self._num_threads == 0 and callback is not None:
            callback(self._base_loop)

    def get_next_loop(self) -> EventLoop:
        """Return the next sub-loop in turn, or the base loop when there are none."""
        if not self._loops:
            return self._base_loop
        loop = self._loops[self._next]
        self._next = (self._next + 1) % len(self._loops)
        return loop

    def get_all_loops(self) -> List[EventLoop]:
        if not self._loops:
            return [self._base_loop]
        return list(self._loops)

    def close(self) -> None:
        """Stop every sub-loop and join its thread."""
        for thread in self._threads:
            thread.close()
        self._threads.clear()
        self._loops.clear()
        self._next = 0

    def __enter__(self) -> "EventLoopThreadPool":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()