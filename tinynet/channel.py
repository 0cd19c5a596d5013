"""A file descriptor together with the events it is watched for."""

from __future__ import annotations

import logging
import select
import weakref
from typing import Any, Callable, Optional

from .timestamp import Timestamp

_log = logging.getLogger(__name__)

POLLIN = getattr(select, "POLLIN", 0x001)
POLLPRI = getattr(select, "POLLPRI", 0x002)
POLLOUT = getattr(select, "POLLOUT", 0x004)
POLLERR = getattr(select, "POLLERR", 0x008)
POLLHUP = getattr(select, "POLLHUP", 0x010)

NONE_EVENT = 0
READ_EVENT = POLLIN | POLLPRI
WRITE_EVENT = POLLOUT

EventCallback = Callable[[], None]
ReadEventCallback = Callable[[Timestamp], None]

# Callbacks a TCP server hands down to its connections.
ConnectionCallback = Callable[[Any], None]
CloseCallback = Callable[[Any], None]
WriteCompleteCallback = Callable[[Any], None]
HighWaterMarkCallback = Callable[[Any, int], None]
MessageCallback = Callable[[Any, Any, Timestamp], None]


class Channel:
    """Binds a file descriptor to its interest set and event callbacks.

    The owning loop must provide ``update_channel`` and ``remove_channel``;
    every change of the interest set is pushed to it.
    """

    def __init__(self, loop: Any, fd: int) -> None:
        self._loop = loop
        self._fd = fd
        self._events = NONE_EVENT
        self.revents = 0
        self.index = -1
        self._tie: Optional[weakref.ReferenceType] = None
        self.read_callback: Optional[ReadEventCallback] = None
        self.write_callback: Optional[EventCallback] = None
        self.close_callback: Optional[EventCallback] = None
        self.error_callback: Optional[EventCallback] = None

    @property
    def fd(self) -> int:
        return self._fd

    @property
    def events(self) -> int:
        """The events this channel is interested in."""
        return self._events

    @property
    def owner_loop(self) -> Any:
        return self._loop

    def tie(self, obj: Any) -> None:
        """Handle events only while ``obj`` is still alive."""
        self._tie = weakref.ref(obj)

    def enable_reading(self) -> None:
        self._events |= READ_EVENT
        self._update()

    def disable_reading(self) -> None:
        self._events &= ~READ_EVENT
        self._update()

    def enable_writing(self) -> None:
        self._events |= WRITE_EVENT
        self._update()

    def disable_writing(self) -> None:
        self._events &= ~WRITE_EVENT
        self._update()

    def disable_all(self) -> None:
        self._events = NONE_EVENT
        self._update()

    def is_none_event(self) -> bool:
        return self._events == NONE_EVENT

    def is_writing(self) -> bool:
        return bool(self._events & WRITE_EVENT)

    def is_reading(self) -> bool:
        return bool(self._events & READ_EVENT)

    def remove(self) -> None:
        """Drop this channel from its loop's poller."""
        self._loop.remove_channel(self)

    def handle_event(self, receive_time: Timestamp) -> None:
        """Dispatch the events in ``revents`` to the matching callbacks."""
        if self._tie is not None:
            guard = self._tie()
            if guard is None:
                return
            self._handle_event_with_guard(receive_time)
            del guard
        else:
            self._handle_event_with_guard(receive_time)

    def _update(self) -> None:
        self._loop.update_channel(self)

    def _handle_event_with_guard(self, receive_time: Timestamp) -> None:
        revents = self.revents
        if (revents & POLLHUP) and not (revents & POLLIN):
            if self.close_callback is not None:
                self.close_callback()

        if revents & POLLERR:
            _log.error("error event on fd %d", self._fd)
            if self.error_callback is not None:
                self.error_callback()

        if revents & (POLLIN | POLLPRI):
            _log.debug("read event on fd %d", self._fd)
            if self.read_callback is not None:
                self.read_callback(receive_time)

        if revents & POLLOUT:
            if self.write_callback is not None:
                self.write_callback()

    def __repr__(self) -> str:
        return f"Channel(fd={self._fd}, events={self._events:#x})"