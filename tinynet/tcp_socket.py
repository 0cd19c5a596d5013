"""A TCP socket owned by one object and closed with it."""

from __future__ import annotations

import contextlib
import logging
import socket
from typing import Tuple, Union

from .inet_address import InetAddress

_log = logging.getLogger(__name__)

LISTEN_BACKLOG = 1024


class Socket:
    """Owns a socket; takes a ``socket.socket`` or a raw file descriptor."""

    def __init__(self, sock: Union[socket.socket, int]) -> None:
        if isinstance(sock, int):
            sock = socket.socket(fileno=sock)
        self._sock = sock

    @property
    def sock(self) -> socket.socket:
        return self._sock

    def fileno(self) -> int:
        return self._sock.fileno()

    def bind_address(self, local_addr: InetAddress) -> None:
        """Bind to ``local_addr``; raises ``OSError`` on failure."""
        try:
            self._sock.bind(local_addr.sockaddr())
        except OSError:
            _log.critical("bind fd %d failed", self.fileno())
            raise

    def listen(self) -> None:
        """Start accepting connections; raises ``OSError`` on failure."""
        try:
            self._sock.listen(LISTEN_BACKLOG)
        except OSError:
            _log.critical("listen fd %d failed", self.fileno())
            raise

    def accept(self) -> Tuple[socket.socket, InetAddress]:
        """Accept a connection; return it, non-blocking, with the peer's address."""
        try:
            conn, addr = self._sock.accept()
        except BlockingIOError:
            raise
        except OSError:
            _log.error("accept failed on fd %d", self.fileno())
            raise
        conn.setblocking(False)
        return conn, InetAddress.from_sockaddr(addr)

    def shutdown_write(self) -> None:
        """Close the sending side; the socket can still receive."""
        try:
            self._sock.shutdown(socket.SHUT_WR)
        except OSError:
            _log.error("shutdown_write failed on fd %d", self.fileno())

    def set_tcp_no_delay(self, on: bool) -> None:
        self._set_option(socket.IPPROTO_TCP, socket.TCP_NODELAY, on)

    def set_reuse_addr(self, on: bool) -> None:
        self._set_option(socket.SOL_SOCKET, socket.SO_REUSEADDR, on)

    def set_reuse_port(self, on: bool) -> None:
        option = getattr(socket, "SO_REUSEPORT", None)
        if option is not None:
            self._set_option(socket.SOL_SOCKET, option, on)

    def set_keep_alive(self, on: bool) -> None:
        self._set_option(socket.SOL_SOCKET, socket.SO_KEEPALIVE, on)

    def close(self) -> None:
        self._sock.close()

    def __enter__(self) -> "Socket":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _set_option(self, level: int, option: int, on: bool) -> None:
        with contextlib.suppress(OSError):
            self._sock.setsockopt(level, option, 1 if on else 0)

    def __repr__(self) -> str:
        return f"Socket(fd={self.fileno()})"