"""The reactor: one event loop per thread, dispatching I/O, timers and queued calls."""

from __future__ import annotations

import logging
import os
import threading
from typing import Callable, List, Optional

from .channel import Channel
from .poller import new_default_poller
from .timer import Timer
from .timer_queue import TimerQueue
from .timestamp import Timestamp, add_time

_log = logging.getLogger(__name__)

POLL_TIME_MS = 10000
"""Longest time one poll may block, in milliseconds."""

_WAKEUP_BYTES = (1).to_bytes(8, "little")

Functor = Callable[[], None]

_current = threading.local()


class EventLoop:
    """Runs I/O callbacks, timers and queued functions in its owner thread.

    Only one loop may exist per thread at a time. Other threads hand work
    to the loop with ``run_in_loop`` or ``queue_in_loop``; the loop is woken
    through an internal pipe.
    """

    def __init__(self) -> None:
        existing = getattr(_current, "loop", None)
        if existing is not None:
            raise RuntimeError(
                f"another EventLoop {existing!r} exists in thread {threading.get_ident()}"
            )
        self._looping = False
        self._quit = False
        self._calling_pending_functors = False
        self._thread_id = threading.get_ident()
        self._poll_return_time = Timestamp.invalid()
        self._lock = threading.Lock()
        self._wakeup_lock = threading.Lock()
        self._pending_functors: List[Functor] = []
        self._closed = False

        self._poller = new_default_poller(self)
        self._timer_queue = TimerQueue(self)

        self._wakeup_read, self._wakeup_write = os.pipe()
        os.set_blocking(self._wakeup_read, False)
        os.set_blocking(self._wakeup_write, False)
        self._wakeup_channel = Channel(self, self._wakeup_read)
        self._wakeup_channel.read_callback = self._handle_read
        self._wakeup_channel.enable_reading()

        _current.loop = self
        _log.debug("EventLoop %r created in thread %d", self, self._thread_id)

    @property
    def poll_return_time(self) -> Timestamp:
        """When the last poll returned."""
        return self._poll_return_time

    @property
    def looping(self) -> bool:
        return self._looping

    @property
    def thread_id(self) -> int:
        return self._thread_id

    def loop(self) -> None:
        """Run until ``quit`` is called."""
        if self._closed:
            raise RuntimeError("event loop is closed")
        self._looping = True
        self._quit = False
        _log.info("EventLoop %r start looping", self)
        try:
            while not self._quit:
                now, active = self._poller.poll(self._poll_timeout_ms())
                self._poll_return_time = now
                for channel in active:
                    channel.handle_event(now)
                self._run_expired_timers()
                self._do_pending_functors()
        finally:
            self._looping = False

    def quit(self) -> None:
        """Ask the loop to stop after its current iteration; safe from any thread."""
        self._quit = True
        self.wakeup()

    def run_in_loop(self, callback: Functor) -> None:
        """Call now if in the loop's thread, otherwise queue and wake the loop."""
        if self.is_in_loop_thread():
            callback()
        else:
            self.queue_in_loop(callback)

    def queue_in_loop(self, callback: Functor) -> None:
        """Queue ``callback`` to run after the loop's next poll."""
        with self._lock:
            self._pending_functors.append(callback)
        if not self.is_in_loop_thread() or self._calling_pending_functors:
            self.wakeup()

    def wakeup(self) -> None:
        """Make a blocked poll return."""
        with self._wakeup_lock:
            if self._closed:
                return
            try:
                written = os.write(self._wakeup_write, _WAKEUP_BYTES)
            except BlockingIOError:
                return
            if written != len(_WAKEUP_BYTES):
                _log.error("EventLoop.wakeup writes %d bytes instead of 8", written)

    def update_channel(self, channel: Channel) -> None:
        self._poller.update_channel(channel)

    def remove_channel(self, channel: Channel) -> None:
        self._poller.remove_channel(channel)

    def has_channel(self, channel: Channel) -> bool:
        return self._poller.has_channel(channel)

    def is_in_loop_thread(self) -> bool:
        return self._thread_id == threading.get_ident()

    def run_at(self, timestamp: Timestamp, callback: Functor) -> Timer:
        """Run ``callback`` once at ``timestamp``."""
        return self._timer_queue.add_timer(callback, timestamp, 0.0)

    def run_after(self, delay: float, callback: Functor) -> Timer:
        """Run ``callback`` once, ``delay`` seconds from now."""
        return self.run_at(add_time(Timestamp.now(), delay), callback)

    def run_every(self, interval: float, callback: Functor) -> Timer:
        """Run ``callback`` every ``interval`` seconds, starting one interval from now."""
        when = add_time(Timestamp.now(), interval)
        return self._timer_queue.add_timer(callback, when, interval)

    def close(self) -> None:
        """Release the loop's resources; the thread may then create a new loop."""
        if self._closed:
            return
        self._wakeup_channel.disable_all()
        self._wakeup_channel.remove()
        with self._wakeup_lock:
            self._closed = True
            os.close(self._wakeup_read)
            os.close(self._wakeup_write)
        self._poller.close()
        if getattr(_current, "loop", None) is self:
            _current.loop = None

    def __enter__(self) -> "EventLoop":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _poll_timeout_ms(self) -> int:
        earliest: Optional[Timestamp] = self._timer_queue.earliest_expiration()
        if earliest is None:
            return POLL_TIME_MS
        diff_us = earliest.micro_seconds_since_epoch - Timestamp.now().micro_seconds_since_epoch
        if diff_us <= 0:
            return 0
        return min(POLL_TIME_MS, -(-diff_us // 1000))

    def _run_expired_timers(self) -> None:
        now = Timestamp.now()
        earliest = self._timer_queue.earliest_expiration()
        if earliest is not None and earliest <= now:
            self._timer_queue.handle_expired(now)

    def _handle_read(self, receive_time: Timestamp) -> None:
        while True:
            try:
                data = os.read(self._wakeup_read, 4096)
            except BlockingIOError:
                return
            if not data:
                return

    def _do_pending_functors(self) -> None:
        self._calling_pending_functors = True
        try:
            with self._lock:
                functors, self._pending_functors = self._pending_functors, []
            for functor in functors:
                functor()
        finally:
            self._calling_pending_functors = False

    def __repr__(self) -> str:
        return f"EventLoop(thread={self._thread_id}, closed={self._closed})"