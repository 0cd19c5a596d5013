"""A parsed HTTP request."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, fields
from typing import Dict

from .timestamp import Timestamp

_C_SPACE = " \t\n\v\f\r"


class Method(enum.IntEnum):
    INVALID = 0
    GET = 1
    POST = 2
    HEAD = 3
    PUT = 4
    DELETE = 5


class Version(enum.IntEnum):
    UNKNOWN = 0
    HTTP10 = 1
    HTTP11 = 2


_METHODS_BY_NAME = {
    "GET": Method.GET,
    "POST": Method.POST,
    "HEAD": Method.HEAD,
    "PUT": Method.PUT,
    "DELETE": Method.DELETE,
}


@dataclass
class HttpRequest:
    """Method, version, target, receive time and headers of a request."""

    method: Method = Method.INVALID
    version: Version = Version.UNKNOWN
    path: str = ""
    query: str = ""
    receive_time: Timestamp = field(default_factory=Timestamp.invalid)
    headers: Dict[str, str] = field(default_factory=dict)

    def set_method(self, method: str) -> bool:
        """Set the method from its name; return whether it is recognised."""
        self.method = _METHODS_BY_NAME.get(method, Method.INVALID)
        return self.method is not Method.INVALID

    def method_string(self) -> str:
        if self.method is Method.INVALID:
            return "UNKNOWN"
        return self.method.name

    def add_header(self, field: str, value: str) -> None:
        """Store a header, trimming whitespace around the value."""
        self.headers[field] = value.strip(_C_SPACE)

    def get_header(self, field: str) -> str:
        """Return the header's value, or an empty string if absent."""
        return self.headers.get(field, "")

    def swap(self, other: "HttpRequest") -> None:
        """Exchange all state with ``other``."""
        for item in fields(self):
            mine = getattr(self, item.name)
            setattr(self, item.name, getattr(other, item.name))
            setattr(other, item.name, mine)