import socket
import threading

import pytest

from tinynet.buffer import Buffer
from tinynet.event_loop import EventLoop
from tinynet.inet_address import InetAddress
from tinynet.tcp_connection import ConnectionState, TcpConnection
from tinynet.timestamp import Timestamp


@pytest.fixture
def loop():
    ev = EventLoop()
    yield ev
    ev.close()


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    a.setblocking(False)
    b.settimeout(5)
    yield a, b
    a.close()
    b.close()


@pytest.fixture
def conn(loop, pair):
    c = TcpConnection(loop, "conn#1", pair[0], InetAddress(0), InetAddress(0))
    yield c
    c.connect_destroyed()


def _drive(loop, action=None, timeout=2.0):
    loop.run_after(0, action or (lambda: None))
    loop.run_after(timeout, loop.quit)
    loop.loop()


def test_requires_loop(pair):
    with pytest.raises(ValueError):
        TcpConnection(None, "x", pair[0], InetAddress(0), InetAddress(0))


def test_initial_state(conn):
    assert conn.state is ConnectionState.CONNECTING
    assert conn.connected is False
    assert conn.name == "conn#1"


def test_connect_established_reports_connected(conn):
    events = []
    conn.connection_callback = lambda c: events.append((c, c.connected))
    conn.connect_established()
    assert events == [(conn, True)]
    assert conn.state is ConnectionState.CONNECTED


def test_receives_message(loop, conn, pair):
    received = []

    def on_message(c, buf, when):
        received.append((buf.retrieve_all_as_bytes(), when))
        loop.quit()

    conn.message_callback = on_message
    conn.connect_established()
    pair[1].sendall(b"hello")
    _drive(loop)
    assert [data for data, _ in received] == [b"hello"]
    assert received[0][1] > Timestamp.invalid()


def test_send_bytes_and_write_complete(loop, conn, pair):
    completes = []

    def on_complete(c):
        completes.append(c)
        loop.quit()

    conn.write_complete_callback = on_complete
    conn.connect_established()
    _drive(loop, lambda: conn.send(b"abc"))
    assert completes == [conn]
    assert pair[1].recv(3) == b"abc"


def test_send_buffer_drains_it(conn, pair):
    conn.connect_established()
    buf = Buffer()
    buf.append(b"xyz")
    conn.send(buf)
    assert buf.readable_bytes == 0
    assert pair[1].recv(3) == b"xyz"


def test_send_text_is_utf8(conn, pair):
    conn.connect_established()
    conn.send("héllo")
    assert conn.output_buffer.readable_bytes == 0
    assert conn.connected is True
    assert pair[1].recv(16) == "héllo".encode("utf-8")


def test_send_ignored_before_connected(conn, pair):
    conn.send(b"x")
    assert conn.state is ConnectionState.CONNECTING
    assert conn.output_buffer.readable_bytes == 0
    pair[1].setblocking(False)
    with pytest.raises(BlockingIOError):
        pair[1].recv(1)


def test_peer_close(loop, conn, pair):
    states = []
    closed = []
    conn.connection_callback = lambda c: states.append(c.connected)

    def on_close(c):
        closed.append(c)
        loop.quit()

    conn.close_callback = on_close
    conn.connect_established()
    pair[1].close()
    _drive(loop)
    assert states == [True, False]
    assert closed == [conn]
    assert conn.state is ConnectionState.DISCONNECTED
    conn.connect_destroyed()
    assert states == [True, False]


def test_shutdown_half_closes(conn, pair):
    conn.connect_established()
    conn.shutdown()
    assert conn.state is ConnectionState.DISCONNECTING
    assert conn.connected is False
    assert pair[1].recv(1) == b""


def test_connect_destroyed_reports_and_closes(conn, pair):
    states = []
    conn.connection_callback = lambda c: states.append(c.connected)
    conn.connect_established()
    conn.connect_destroyed()
    assert states == [True, False]
    assert conn.state is ConnectionState.DISCONNECTED
    assert pair[1].recv(1) == b""


def test_large_send_is_buffered_and_delivered(loop, conn, pair):
    big = bytes(range(256)) * 8192
    marks = []
    done = []
    received = bytearray()

    def reader():
        while len(received) < len(big):
            chunk = pair[1].recv(65536)
            if not chunk:
                break
            received.extend(chunk)

    def on_complete(c):
        done.append(c)
        loop.quit()

    conn.set_high_water_mark_callback(lambda c, n: marks.append(n), 1)
    conn.write_complete_callback = on_complete
    conn.connect_established()

    thread = threading.Thread(target=reader)
    thread.start()
    _drive(loop, lambda: conn.send(big), timeout=10.0)
    thread.join(10)

    assert done == [conn]
    assert bytes(received) == big
    assert len(marks) == 1
    assert 0 < marks[0] <= len(big)
    assert conn.output_buffer.readable_bytes == 0