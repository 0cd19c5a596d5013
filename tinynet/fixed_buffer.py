"""Fixed-capacity byte buffers used by the logger."""

from __future__ import annotations

from typing import Union

SMALL_BUFFER = 4000
LARGE_BUFFER = 4000 * 1000


class FixedBuffer:
    """A byte area of fixed capacity with a write cursor.

    Appends that do not fit with room to spare are dropped silently.
    """

    def __init__(self, size: int = SMALL_BUFFER) -> None:
        if size <= 0:
            raise ValueError("size must be positive")
        self._data = bytearray(size)
        self._cur = 0

    @property
    def capacity(self) -> int:
        return len(self._data)

    @property
    def data(self) -> bytes:
        """The whole storage area, written or not."""
        return bytes(self._data)

    @property
    def length(self) -> int:
        """Number of bytes up to the write cursor."""
        return self._cur

    @property
    def current(self) -> int:
        """Position of the write cursor."""
        return self._cur

    @property
    def avail(self) -> int:
        return len(self._data) - self._cur

    def append(self, data: Union[bytes, bytearray, memoryview, str]) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        length = len(data)
        if self.avail > length:
            self._data[self._cur:self._cur + length] = data
            self._cur += length

    def add(self, length: int) -> None:
        """Advance the cursor over bytes written directly into the area."""
        if length < 0 or length > self.avail:
            raise ValueError("cursor would leave the buffer")
        self._cur += length

    def reset(self) -> None:
        self._cur = 0

    def bzero(self) -> None:
        """Zero the storage area; the cursor is left in place."""
        self._data[:] = bytes(len(self._data))

    def to_bytes(self) -> bytes:
        return bytes(self._data[:self._cur])