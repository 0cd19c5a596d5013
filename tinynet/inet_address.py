"""IPv4 socket addresses."""

from __future__ import annotations

import ipaddress
from typing import Tuple

_ANY_ADDRESS = "0.0.0.0"


def _check_port(port: int) -> None:
    if not 0 <= port <= 0xFFFF:
        raise ValueError(f"port out of range: {port}")


class InetAddress:
    """An IPv4 address and port.

    Built from a port, the address is always the wildcard address; the
    ``ip`` argument is accepted but not applied. ``from_sockaddr`` keeps
    the address it is given.
    """

    __slots__ = ("_ip", "_port")

    def __init__(self, port: int = 0, ip: str = "127.0.0.1") -> None:
        _check_port(port)
        self._ip = _ANY_ADDRESS
        self._port = port

    @classmethod
    def from_sockaddr(cls, addr: Tuple[str, int]) -> "InetAddress":
        """Build from a ``(host, port)`` pair such as ``socket.accept`` returns."""
        host, port = addr[0], addr[1]
        _check_port(port)
        ip = str(ipaddress.IPv4Address(host))
        result = cls.__new__(cls)
        result._ip = ip
        result._port = port
        return result

    def to_ip(self) -> str:
        return self._ip

    def to_ip_port(self) -> str:
        return f"{self._ip}:{self._port}"

    def to_port(self) -> int:
        return self._port

    def sockaddr(self) -> Tuple[str, int]:
        """Return the ``(host, port)`` pair used by the socket module."""
        return (self._ip, self._port)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InetAddress):
            return NotImplemented
        return self.sockaddr() == other.sockaddr()

    def __hash__(self) -> int:
        return hash(self.sockaddr())

    def __repr__(self) -> str:
        return f"InetAddress({self.to_ip_port()!r})"