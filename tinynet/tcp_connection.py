"""One established TCP connection and its buffered I/O."""

from __future__ import annotations

import enum
import errno
import functools
import logging
import socket
from typing import Any, Optional, Union

from .buffer import Buffer
from .channel import (
    CloseCallback,
    Channel,
    ConnectionCallback,
    HighWaterMarkCallback,
    MessageCallback,
    WriteCompleteCallback,
)
from .inet_address import InetAddress
from .tcp_socket import Socket
from .timestamp import Timestamp

_log = logging.getLogger(__name__)

DEFAULT_HIGH_WATER_MARK = 64 * 1024 * 1024


class ConnectionState(enum.IntEnum):
    DISCONNECTED = 0
    CONNECTING = 1
    CONNECTED = 2
    DISCONNECTING = 3


class TcpConnection:
    """A connection owned by one loop, with input and output buffers.

    Data that cannot be written at once is kept in the output buffer and
    sent as the socket becomes writable.
    """

    def __init__(
        self,
        loop: Any,
        name: str,
        sock: Union[socket.socket, int],
        local_addr: InetAddress,
        peer_addr: InetAddress,
    ) -> None:
        if loop is None:
            raise ValueError("loop is None")
        self._loop = loop
        self._name = name
        self._state = ConnectionState.CONNECTING
        self._socket = Socket(sock)
        self._channel = Channel(loop, self._socket.fileno())
        self._local_addr = local_addr
        self._peer_addr = peer_addr

        self.connection_callback: Optional[ConnectionCallback] = None
        self.message_callback: Optional[MessageCallback] = None
        self.write_complete_callback: Optional[WriteCompleteCallback] = None
        self.close_callback: Optional[CloseCallback] = None
        self.high_water_mark_callback: Optional[HighWaterMarkCallback] = None
        self.high_water_mark = DEFAULT_HIGH_WATER_MARK

        self.input_buffer = Buffer()
        self.output_buffer = Buffer()

        self._channel.read_callback = self._handle_read
        self._channel.write_callback = self._handle_write
        self._channel.close_callback = self._handle_close
        self._channel.error_callback = self._handle_error

        _log.info("TcpConnection[%s] created at fd=%d", name, self._channel.fd)
        self._socket.set_keep_alive(True)

    @property
    def loop(self) -> Any:
        return self._loop

    @property
    def name(self) -> str:
        return self._name

    @property
    def local_address(self) -> InetAddress:
        return self._local_addr

    @property
    def peer_address(self) -> InetAddress:
        return self._peer_addr

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def set_high_water_mark_callback(
        self, callback: Optional[HighWaterMarkCallback], high_water_mark: int
    ) -> None:
        """Call ``callback`` when pending output first reaches ``high_water_mark`` bytes."""
        self.high_water_mark_callback = callback
        self.high_water_mark = high_water_mark

    def send(self, data: Union[bytes, bytearray, memoryview, str, Buffer]) -> None:
        """Send data; ignored unless connected. A ``Buffer`` is drained."""
        if self._state is not ConnectionState.CONNECTED:
            return
        if isinstance(data, Buffer):
            if self._loop.is_in_loop_thread():
                self._send_in_loop(data.peek())
                data.retrieve_all()
            else:
                self._loop.run_in_loop(
                    functools.partial(self._send_in_loop, data.retrieve_all_as_bytes())
                )
            return
        payload = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        if self._loop.is_in_loop_thread():
            self._send_in_loop(payload)
        else:
            self._loop.run_in_loop(functools.partial(self._send_in_loop, payload))

    def shutdown(self) -> None:
        """Close the sending side once all pending output is written."""
        if self._state is ConnectionState.CONNECTED:
            self._state = ConnectionState.DISCONNECTING
            self._loop.run_in_loop(self._shutdown_in_loop)

    def connect_established(self) -> None:
        """Mark the connection up and start watching it for input."""
        self._state = ConnectionState.CONNECTED
        self._channel.tie(self)
        self._channel.enable_reading()
        if self.connection_callback is not None:
            self.connection_callback(self)

    def connect_destroyed(self) -> None:
        """Tear the connection down and release its socket."""
        if self._state is ConnectionState.CONNECTED:
            self._state = ConnectionState.DISCONNECTED
            self._channel.disable_all()
            if self.connection_callback is not None:
                self.connection_callback(self)
        self._channel.remove()
        self._socket.close()

    def _send_in_loop(self, data: bytes) -> None:
        if self._state is ConnectionState.DISCONNECTED:
            _log.error("disconnected, give up writing")
            return
        written = 0
        remaining = len(data)
        fault_error = False

        if not self._channel.is_writing() and self.output_buffer.readable_bytes == 0:
            try:
                written = self._socket.sock.send(data)
            except BlockingIOError:
                written = 0
            except OSError as exc:
                written = 0
                _log.error("TcpConnection send failed: %s", exc)
                if exc.errno in (errno.EPIPE, errno.ECONNRESET):
                    fault_error = True
            else:
                remaining = len(data) - written
                if remaining == 0 and self.write_complete_callback is not None:
                    self._loop.queue_in_loop(
                        functools.partial(self.write_complete_callback, self)
                    )

        if not fault_error and remaining > 0:
            old_len = self.output_buffer.readable_bytes
            if (
                old_len + remaining >= self.high_water_mark
                and old_len < self.high_water_mark
                and self.high_water_mark_callback is not None
            ):
                self._loop.queue_in_loop(
                    functools.partial(
                        self.high_water_mark_callback, self, old_len + remaining
                    )
                )
            self.output_buffer.append(memoryview(data)[written:])
            if not self._channel.is_writing():
                self._channel.enable_writing()

    def _shutdown_in_loop(self) -> None:
        if not self._channel.is_writing():
            self._socket.shutdown_write()

    def _handle_read(self, receive_time: Timestamp) -> None:
        try:
            count = self.input_buffer.read_fd(self._channel.fd)
        except BlockingIOError:
            return
        except OSError as exc:
            _log.error("TcpConnection read failed: %s", exc)
            self._handle_error()
            return
        if count > 0:
            if self.message_callback is not None:
                self.message_callback(self, self.input_buffer, receive_time)
        else:
            self._handle_close()

    def _handle_write(self) -> None:
        if not self._channel.is_writing():
            _log.error("TcpConnection fd=%d is down, no more writing", self._channel.fd)
            return
        try:
            count = self.output_buffer.write_fd(self._channel.fd)
        except OSError as exc:
            _log.error("TcpConnection write failed: %s", exc)
            return
        if count <= 0:
            _log.error("TcpConnection write made no progress")
            return
        self.output_buffer.retrieve(count)
        if self.output_buffer.readable_bytes == 0:
            self._channel.disable_writing()
            if self.write_complete_callback is not None:
                self._loop.queue_in_loop(
                    functools.partial(self.write_complete_callback, self)
                )
            if self._state is ConnectionState.DISCONNECTING:
                self._shutdown_in_loop()

    def _handle_close(self) -> None:
        self._state = ConnectionState.DISCONNECTED
        self._channel.disable_all()
        if self.connection_callback is not None:
            self.connection_callback(self)
        if self.close_callback is not None:
            self.close_callback(self)

    def _handle_error(self) -> None:
        try:
            err = self._socket.sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        except OSError as exc:
            err = exc.errno
        _log.error("TcpConnection error name:%s - SO_ERROR:%s", self._name, err)

    def __repr__(self) -> str:
        return f"TcpConnection(name={self._name!r}, state={self._state.name})"