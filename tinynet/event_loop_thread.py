"""A thread that owns and runs one event loop."""

from __future__ import annotations

import threading
from typing import Callable, Optional

from .event_loop import EventLoop

ThreadInitCallback = Callable[[EventLoop], None]


class EventLoopThread:
    """Starts a thread, builds an ``EventLoop`` in it and runs that loop."""

    def __init__(self, callback: Optional[ThreadInitCallback] = None, name: str = "") -> None:
        self._callback = callback
        self._name = name
        self._loop: Optional[EventLoop] = None
        self._published: Optional[EventLoop] = None
        self._ready = False
        self._error: Optional[BaseException] = None
        self._exiting = False
        self._cond = threading.Condition()
        self._thread = threading.Thread(
            target=self._thread_func, name=name or None, daemon=True
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def started(self) -> bool:
        return self._thread.ident is not None

    def start_loop(self) -> EventLoop:
        """Start the thread and return its loop once it exists.

        An error raised while building the loop or by the init callback is
        raised here.
        """
        self._thread.start()
        with self._cond:
            self._cond.wait_for(lambda: self._ready)
            if self._error is not None:
                raise self._error
            assert self._published is not None
            return self._published

    def close(self) -> None:
        """Stop the loop and wait for the thread to finish."""
        self._exiting = True
        with self._cond:
            loop = self._loop
        if loop is not None:
            loop.quit()
        if self._thread.ident is not None:
            self._thread.join()

    def __enter__(self) -> "EventLoopThread":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _publish(self, loop: Optional[EventLoop] = None,
                 error: Optional[BaseException] = None) -> None:
        with self._cond:
            self._loop = loop
            self._published = loop
            self._error = error
            self._ready = True
            self._cond.notify_all()

    def _thread_func(self) -> None:
        try:
            loop = EventLoop()
        except BaseException as exc:
            self._publish(error=exc)
            return
        try:
            if self._callback is not None:
                self._callback(loop)
        except BaseException as exc:
            loop.close()
            self._publish(error=exc)
            return
        self._publish(loop=loop)
        try:
            loop.loop()
        finally:
            with self._cond:
                self._loop = None
            loop.close()