"""Accepts new TCP connections on a listening socket."""

from __future__ import annotations

import errno
import logging
import socket
from typing import Any, Callable, Optional

from .channel import Channel
from .inet_address import InetAddress
from .tcp_socket import Socket
from .timestamp import Timestamp

_log = logging.getLogger(__name__)

NewConnectionCallback = Callable[[socket.socket, InetAddress], None]


def _create_nonblocking() -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP)
    sock.setblocking(False)
    return sock


class Acceptor:
    """Owns the listening socket and hands each accepted connection on.

    Runs in the base loop. Each accepted socket is passed, non-blocking,
    to ``new_connection_callback`` together with the peer's address; when
    no callback is set the socket is closed at once.
    """

    def __init__(self, loop: Any, listen_addr: InetAddress, reuseport: bool) -> None:
        self._loop = loop
        self._socket = Socket(_create_nonblocking())
        try:
            self._socket.set_reuse_addr(reuseport)
            self._socket.set_reuse_port(True)
            self._socket.bind_address(listen_addr)
        except OSError:
            self._socket.close()
            raise
        _log.debug("Acceptor created nonblocking socket, fd = %d", self._socket.fileno())
        self._channel = Channel(loop, self._socket.fileno())
        self._channel.read_callback = self._handle_read
        self.new_connection_callback: Optional[NewConnectionCallback] = None
        self._listening = False
        self._closed = False

    @property
    def listening(self) -> bool:
        return self._listening

    @property
    def address(self) -> InetAddress:
        """The address the socket is actually bound to."""
        return InetAddress.from_sockaddr(self._socket.sock.getsockname())

    def listen(self) -> None:
        """Start listening and watch the socket for incoming connections."""
        self._listening = True
        self._socket.listen()
        self._channel.enable_reading()

    def close(self) -> None:
        """Stop watching the socket and close it."""
        if self._closed:
            return
        self._closed = True
        self._channel.disable_all()
        self._channel.remove()
        self._socket.close()

    def __enter__(self) -> "Acceptor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _handle_read(self, receive_time: Timestamp) -> None:
        try:
            conn, peer_addr = self._socket.accept()
        except OSError as exc:
            _log.error("accept() failed: %s", exc)
            if exc.errno == errno.EMFILE:
                _log.error("sockfd reached limit")
            return
        if self.new_connection_callback is not None:
            self.new_connection_callback(conn, peer_addr)
        else:
            _log.debug("no new connection callback, closing fd %d", conn.fileno())
            conn.close()