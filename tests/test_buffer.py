import os

import pytest

from tinynet.buffer import CHEAP_PREPEND, INITIAL_SIZE, Buffer


@pytest.fixture
def pipe():
    read_end, write_end = os.pipe()
    yield read_end, write_end
    for fd in (read_end, write_end):
        try:
            os.close(fd)
        except OSError:
            pass


def test_fresh_buffer_layout():
    buf = Buffer()
    assert buf.readable_bytes == 0
    assert buf.writable_bytes == INITIAL_SIZE
    assert buf.prependable_bytes == CHEAP_PREPEND
    assert CHEAP_PREPEND == 8
    assert INITIAL_SIZE == 1024


def test_append_and_retrieve_partial():
    buf = Buffer()
    data = b"x" * 200
    buf.append(data)
    assert buf.readable_bytes == len(data)
    assert buf.writable_bytes == INITIAL_SIZE - len(data)

    head = buf.retrieve_as_bytes(50)
    assert head == data[:50]
    assert buf.readable_bytes == len(data) - 50
    assert buf.prependable_bytes == CHEAP_PREPEND + 50

    buf.append(data)
    assert buf.readable_bytes == 2 * len(data) - 50


def test_retrieve_everything_resets_positions():
    buf = Buffer()
    buf.append(b"hello world")
    assert buf.retrieve_all_as_bytes() == b"hello world"
    assert buf.readable_bytes == 0
    assert buf.prependable_bytes == CHEAP_PREPEND
    assert buf.writable_bytes == INITIAL_SIZE


def test_retrieve_more_than_readable_resets():
    buf = Buffer()
    buf.append(b"abc")
    buf.retrieve(10)
    assert len(buf) == 0
    assert buf.prependable_bytes == CHEAP_PREPEND


def test_retrieve_negative_raises():
    buf = Buffer()
    with pytest.raises(ValueError):
        buf.retrieve(-1)
    with pytest.raises(ValueError):
        buf.retrieve_as_bytes(-1)


def test_peek_does_not_consume():
    buf = Buffer()
    buf.append(b"peek")
    assert buf.peek() == b"peek"
    assert buf.peek() == b"peek"
    assert len(buf) == 4


def test_grow_when_space_runs_out():
    buf = Buffer()
    data = bytes(range(256)) * 8
    buf.append(data)
    assert buf.peek() == data
    assert buf.readable_bytes == len(data)
    assert buf.writable_bytes == 0
    assert buf.prependable_bytes == CHEAP_PREPEND


def test_compaction_moves_readable_to_front():
    buf = Buffer()
    buf.append(b"a" * 1000)
    buf.retrieve(900)
    buf.append(b"b" * 100)
    assert buf.prependable_bytes == CHEAP_PREPEND
    assert buf.peek() == b"a" * 100 + b"b" * 100


def test_append_text_is_utf8():
    buf = Buffer()
    buf.append("héllo")
    assert buf.peek() == "héllo".encode("utf-8")


def test_find_crlf():
    buf = Buffer()
    buf.append(b"GET / HTTP/1.1\r\nHost: a\r\n")
    offset = buf.find_crlf()
    assert buf.peek()[:offset] == b"GET / HTTP/1.1"
    buf.retrieve_until(offset + 2)
    assert buf.peek().startswith(b"Host: a")


def test_find_crlf_absent():
    buf = Buffer()
    buf.append(b"no line end\r")
    assert buf.find_crlf() is None


def test_find_crlf_ignores_consumed_data():
    buf = Buffer()
    buf.append(b"\r\nabc")
    buf.retrieve(2)
    assert buf.find_crlf() is None


def test_read_fd_small(pipe):
    read_end, write_end = pipe
    os.write(write_end, b"hello")
    buf = Buffer()
    assert buf.read_fd(read_end) == 5
    assert buf.peek() == b"hello"


def test_read_fd_overflows_into_extra_space(pipe):
    read_end, write_end = pipe
    payload = bytes(range(100))
    os.write(write_end, payload)
    buf = Buffer(16)
    assert buf.read_fd(read_end) == len(payload)
    assert buf.peek() == payload


def test_read_fd_end_of_stream(pipe):
    read_end, write_end = pipe
    os.close(write_end)
    buf = Buffer()
    assert buf.read_fd(read_end) == 0
    assert len(buf) == 0


def test_read_fd_would_block_raises(pipe):
    read_end, _ = pipe
    os.set_blocking(read_end, False)
    buf = Buffer()
    with pytest.raises(BlockingIOError):
        buf.read_fd(read_end)


def test_write_fd_keeps_data(pipe):
    read_end, write_end = pipe
    buf = Buffer()
    buf.append(b"abc")
    assert buf.write_fd(write_end) == 3
    assert os.read(read_end, 3) == b"abc"
    assert buf.peek() == b"abc"


def test_write_fd_bad_descriptor_raises(pipe):
    _, write_end = pipe
    os.close(write_end)
    buf = Buffer()
    buf.append(b"abc")
    with pytest.raises(OSError):
        buf.write_fd(write_end)