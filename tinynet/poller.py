"""I/O multiplexing: watches channels and reports which became ready."""

from __future__ import annotations

import abc
import logging
import select
from typing import Any, Dict, List, Tuple

from .channel import Channel
from .timestamp import Timestamp

_log = logging.getLogger(__name__)

NEW = -1
ADDED = 1
DELETED = 2


class Poller(abc.ABC):
    """Base class of pollers; keeps the fd-to-channel map."""

    def __init__(self, loop: Any) -> None:
        self._owner_loop = loop
        self._channels: Dict[int, Channel] = {}

    @property
    def owner_loop(self) -> Any:
        return self._owner_loop

    def has_channel(self, channel: Channel) -> bool:
        """Whether ``channel`` itself is registered under its fd."""
        return self._channels.get(channel.fd) is channel

    @abc.abstractmethod
    def poll(self, timeout_ms: int) -> Tuple[Timestamp, List[Channel]]:
        """Wait for events; return the time of return and the ready channels."""

    @abc.abstractmethod
    def update_channel(self, channel: Channel) -> None:
        """Apply the channel's current interest set."""

    @abc.abstractmethod
    def remove_channel(self, channel: Channel) -> None:
        """Forget the channel entirely."""

    @abc.abstractmethod
    def close(self) -> None:
        """Release the poller's resources."""


class PollPoller(Poller):
    """Poller built on ``select.poll``."""

    def __init__(self, loop: Any) -> None:
        super().__init__(loop)
        self._poll = select.poll()

    def poll(self, timeout_ms: int) -> Tuple[Timestamp, List[Channel]]:
        poll_object = self._require_open()
        try:
            events = poll_object.poll(timeout_ms)
        except InterruptedError:
            events = []
        except OSError:
            _log.exception("poll() failed")
            events = []
        now = Timestamp.now()

        active: List[Channel] = []
        for fd, revents in events:
            channel = self._channels.get(fd)
            if channel is None:
                continue
            channel.revents = revents
            active.append(channel)
        if not events:
            _log.debug("poll timed out")
        return now, active

    def update_channel(self, channel: Channel) -> None:
        poll_object = self._require_open()
        index = channel.index
        if index in (NEW, DELETED):
            if index == NEW:
                self._channels[channel.fd] = channel
            channel.index = ADDED
            poll_object.register(channel.fd, channel.events)
        elif channel.is_none_event():
            self._unregister(channel)
            channel.index = DELETED
        else:
            poll_object.modify(channel.fd, channel.events)

    def remove_channel(self, channel: Channel) -> None:
        self._channels.pop(channel.fd, None)
        if channel.index == ADDED and self._poll is not None:
            self._unregister(channel)
        channel.index = NEW

    def close(self) -> None:
        self._poll = None

    def _unregister(self, channel: Channel) -> None:
        try:
            self._require_open().unregister(channel.fd)
        except KeyError:
            _log.error("fd %d was not registered", channel.fd)

    def _require_open(self) -> "select.poll":
        if self._poll is None:
            raise ValueError("poller is closed")
        return self._poll


def new_default_poller(loop: Any) -> Poller:
    """Return the poller an event loop uses by default."""
    return PollPoller(loop)