"""A growable byte buffer with a cheap prepend area, used for socket I/O.

Layout::

    | prependable bytes | readable bytes | writable bytes |
    0         <=   reader    <=    writer     <=       size
"""

from __future__ import annotations

import os
from typing import Optional, Union

CHEAP_PREPEND = 8
INITIAL_SIZE = 1024
EXTRA_BUF_SIZE = 65536
CRLF = b"\r\n"

BytesLike = Union[bytes, bytearray, memoryview, str]


class Buffer:
    """Byte buffer with separate read and write positions."""

    CHEAP_PREPEND = CHEAP_PREPEND
    INITIAL_SIZE = INITIAL_SIZE

    def __init__(self, initial_size: int = INITIAL_SIZE) -> None:
        if initial_size < 0:
            raise ValueError("initial_size must not be negative")
        self._buffer = bytearray(CHEAP_PREPEND + initial_size)
        self._reader = CHEAP_PREPEND
        self._writer = CHEAP_PREPEND

    @property
    def readable_bytes(self) -> int:
        return self._writer - self._reader

    @property
    def writable_bytes(self) -> int:
        return len(self._buffer) - self._writer

    @property
    def prependable_bytes(self) -> int:
        return self._reader

    def __len__(self) -> int:
        return self.readable_bytes

    def peek(self) -> bytes:
        """Return the readable bytes without consuming them."""
        return bytes(self._buffer[self._reader:self._writer])

    def retrieve(self, length: int) -> None:
        """Consume ``length`` readable bytes; consuming all resets positions."""
        if length < 0:
            raise ValueError("length must not be negative")
        if length < self.readable_bytes:
            self._reader += length
        else:
            self.retrieve_all()

    def retrieve_until(self, end: int) -> None:
        """Consume up to ``end``, an offset from the start of readable data."""
        self.retrieve(end)

    def retrieve_all(self) -> None:
        self._reader = CHEAP_PREPEND
        self._writer = CHEAP_PREPEND

    def retrieve_as_bytes(self, length: int) -> bytes:
        """Consume and return up to ``length`` readable bytes."""
        if length < 0:
            raise ValueError("length must not be negative")
        result = bytes(self._buffer[self._reader:self._reader + length])
        self.retrieve(length)
        return result

    def retrieve_all_as_bytes(self) -> bytes:
        return self.retrieve_as_bytes(self.readable_bytes)

    def ensure_writable_bytes(self, length: int) -> None:
        if self.writable_bytes < length:
            self._make_space(length)

    def append(self, data: BytesLike) -> None:
        """Append bytes (or UTF-8 encoded text) after the readable data."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        length = len(data)
        self.ensure_writable_bytes(length)
        self._buffer[self._writer:self._writer + length] = data
        self._writer += length

    def find_crlf(self) -> Optional[int]:
        """Return the offset of the first CRLF in readable data, or None."""
        index = self._buffer.find(CRLF, self._reader, self._writer)
        return None if index < 0 else index - self._reader

    def read_fd(self, fd: int) -> int:
        """Read from ``fd`` into the buffer and return the byte count.

        Reads into the free space and, when that is smaller than 64 KiB,
        also into a temporary 64 KiB area that is appended afterwards.
        Errors from the read are raised as ``OSError``.
        """
        writable = self.writable_bytes
        extrabuf = bytearray(EXTRA_BUF_SIZE)
        with memoryview(self._buffer) as whole:
            tail = whole[self._writer:]
            try:
                targets = [tail, extrabuf] if writable < EXTRA_BUF_SIZE else [tail]
                count = os.readv(fd, targets)
            finally:
                tail.release()
        if count <= writable:
            self._writer += count
        else:
            self._writer = len(self._buffer)
            self.append(memoryview(extrabuf)[:count - writable])
        return count

    def write_fd(self, fd: int) -> int:
        """Write readable data to ``fd`` without consuming it; return the count."""
        return os.write(fd, self.peek())

    def _make_space(self, length: int) -> None:
        if self.writable_bytes + self.prependable_bytes < length + CHEAP_PREPEND:
            self._buffer.extend(bytes(self._writer + length - len(self._buffer)))
        else:
            readable = self.readable_bytes
            self._buffer[CHEAP_PREPEND:CHEAP_PREPEND + readable] = (
                self._buffer[self._reader:self._writer]
            )
            self._reader = CHEAP_PREPEND
            self._writer = self._reader + readable