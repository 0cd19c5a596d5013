"""A TCP server distributing connections across event loops."""

from __future__ import annotations

import enum
import logging
import socket
import threading
from typing import Dict, List, Optional

from .acceptor import Acceptor
from .channel import ConnectionCallback, MessageCallback, WriteCompleteCallback
from .event_loop import EventLoop
from .event_loop_thread import ThreadInitCallback
from .event_loop_thread_pool import EventLoopThreadPool
from .inet_address import InetAddress
from .tcp_connection import TcpConnection

_log = logging.getLogger(__name__)

_DESTROY_WAIT_SECONDS = 5.0


class Option(enum.Enum):
    NO_REUSE_PORT = 0
    REUSE_PORT = 1


class TcpServer:
    """Accepts connections in the base loop and hands each to a loop of the pool.

    Connections are named ``<name>-<ip:port>#<n>``, numbered from 1.
    """

    def __init__(
        self,
        loop: EventLoop,
        listen_addr: InetAddress,
        name: str,
        option: Option = Option.NO_REUSE_PORT,
    ) -> None:
        if loop is None:
            raise ValueError("main loop is None")
        self._loop = loop
        self._ip_port = listen_addr.to_ip_port()
        self._name = name
        self._acceptor = Acceptor(loop, listen_addr, option is Option.REUSE_PORT)
        self._thread_pool = EventLoopThreadPool(loop, name)

        self.connection_callback: Optional[ConnectionCallback] = None
        self.message_callback: Optional[MessageCallback] = None
        self.write_complete_callback: Optional[WriteCompleteCallback] = None
        self.thread_init_callback: Optional[ThreadInitCallback] = None

        self._started = 0
        self._start_lock = threading.Lock()
        self._next_conn_id = 1
        self._connections: Dict[str, TcpConnection] = {}
        self._closed = False

        self._acceptor.new_connection_callback = self._new_connection

    @property
    def loop(self) -> EventLoop:
        return self._loop

    @property
    def name(self) -> str:
        return self._name

    @property
    def ip_port(self) -> str:
        """The listen address as given, formatted ``ip:port``."""
        return self._ip_port

    @property
    def listen_address(self) -> InetAddress:
        """The address the listening socket is actually bound to."""
        return self._acceptor.address

    @property
    def connections(self) -> Dict[str, TcpConnection]:
        """A snapshot of the live connections by name."""
        return dict(self._connections)

    def set_thread_num(self, num_threads: int) -> None:
        """Set how many sub-loop threads ``start`` creates."""
        self._thread_pool.num_threads = num_threads

    def start(self) -> None:
        """Start the loop threads and begin listening; later calls do nothing."""
        with self._start_lock:
            first = self._started == 0
            self._started += 1
        if first:
            self._thread_pool.start(self.thread_init_callback)
            self._loop.run_in_loop(self._acceptor.listen)

    def close(self) -> None:
        """Destroy every connection, stop the loop threads and stop listening."""
        if self._closed:
            return
        self._closed = True
        waits: List[threading.Event] = []
        for conn in self._connections.values():
            io_loop = conn.loop
            if io_loop.is_in_loop_thread():
                conn.connect_destroyed()
            else:
                done = threading.Event()
                io_loop.queue_in_loop(self._destroy_and_signal(conn, done))
                waits.append(done)
        self._connections.clear()
        for done in waits:
            done.wait(_DESTROY_WAIT_SECONDS)
        self._thread_pool.close()
        self._acceptor.close()

    def __enter__(self) -> "TcpServer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @staticmethod
    def _destroy_and_signal(conn: TcpConnection, done: threading.Event):
        def destroy() -> None:
            try:
                conn.connect_destroyed()
            finally:
                done.set()

        return destroy

    def _new_connection(self, sock: socket.socket, peer_addr: InetAddress) -> None:
        io_loop = self._thread_pool.get_next_loop()
        conn_name = f"{self._name}-{self._ip_port}#{self._next_conn_id}"
        self._next_conn_id += 1
        _log.info(
            "TcpServer::newConnection [%s] - new connection [%s] from %s",
            self._name, conn_name, peer_addr.to_ip_port(),
        )
        try:
            local_addr = InetAddress.from_sockaddr(sock.getsockname())
        except OSError:
            _log.error("getsockname() failed")
            local_addr = InetAddress.from_sockaddr(("0.0.0.0", 0))

        conn = TcpConnection(io_loop, conn_name, sock, local_addr, peer_addr)
        self._connections[conn_name] = conn
        conn.connection_callback = self.connection_callback
        conn.message_callback = self.message_callback
        conn.write_complete_callback = self.write_complete_callback
        conn.close_callback = self._remove_connection
        io_loop.run_in_loop(conn.connect_established)

    def _remove_connection(self, conn: TcpConnection) -> None:
        self._loop.run_in_loop(lambda: self._remove_connection_in_loop(conn))

    def _remove_connection_in_loop(self, conn: TcpConnection) -> None:
        _log.info(
            "TcpServer::removeConnectionInLoop [%s] - connection %s", self._name, conn.name
        )
        self._connections.pop(conn.name, None)
        conn.loop.queue_in_loop(conn.connect_destroyed)