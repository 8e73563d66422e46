"""Core RPC types: stream kinds, call descriptions, requests and responses.

It also holds the helpers that enforce the rules of a unary stream: exactly
one message, or no message followed by an error that is not an end of stream.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol, runtime_checkable
from urllib.parse import SplitResult, urlsplit

from .code import Code, ConnectError

HTTP_METHOD_POST = "POST"
HTTP_METHOD_GET = "GET"

Headers = dict
"""Header maps are plain dicts from a header name to a list of values."""

Initializer = Callable[["Spec", Any], None]
"""Prepares a freshly created message before it is filled; raises on failure."""


class StreamType(enum.IntEnum):
    """Whether the client, the server, neither or both are streaming."""

    UNARY = 0b00
    CLIENT = 0b01
    SERVER = 0b10
    BIDI = 0b11

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, int) and 0 <= value <= 0xFF:
            member = int.__new__(cls, value)
            member._name_ = f"STREAM_{value}"
            member._value_ = value
            return cls._value2member_map_.setdefault(value, member)
        return None

    def __str__(self) -> str:
        if 0 <= int(self) <= 0b11:
            return self.name.lower()
        return f"stream_{int(self)}"

    def __format__(self, format_spec: str) -> str:
        return format(str(self), format_spec)


@dataclass(frozen=True)
class Spec:
    """A description of a client call or a handler invocation."""

    stream_type: StreamType = StreamType.UNARY
    schema: Any = None
    procedure: str = ""
    is_client: bool = False
    idempotency_level: int = 0


@dataclass
class Peer:
    """The other party to an RPC.

    On the client, ``addr`` is the host or host:port of the server's URL; on
    the server it is the client's address. ``query`` is only set server-side.
    """

    addr: str = ""
    protocol: str = ""
    query: dict[str, list[str]] = field(default_factory=dict)


def new_peer_from_url(url: str | SplitResult, protocol: str) -> Peer:
    """Describe the server at ``url`` as a peer speaking ``protocol``."""
    parts = urlsplit(url) if isinstance(url, str) else url
    host = parts.netloc.rpartition("@")[2]
    return Peer(addr=host, protocol=protocol)


@dataclass
class Request:
    """A request message together with its headers and call metadata."""

    msg: Any = None
    spec: Spec = field(default_factory=Spec)
    peer: Peer = field(default_factory=Peer)
    header: dict[str, list[str]] = field(default_factory=dict)
    http_method: str = ""

    def any(self) -> Any:
        """The wrapped message."""
        return self.msg


@dataclass
class Response:
    """A response message together with its headers and trailers."""

    msg: Any = None
    header: dict[str, list[str]] = field(default_factory=dict)
    trailer: dict[str, list[str]] = field(default_factory=dict)

    def any(self) -> Any:
        """The wrapped message."""
        return self.msg


@runtime_checkable
class StreamingClientConn(Protocol):
    """The client's view of a message exchange.

    ``receive`` fills the given message in place and raises an
    :class:`EOFError` once the server has finished sending.
    """

    def spec(self) -> Spec:
        ...

    def peer(self) -> Peer:
        ...

    def send(self, message) -> None:
        ...

    def request_header(self) -> dict[str, list[str]]:
        ...

    def close_request(self) -> None:
        ...

    def receive(self, message) -> None:
        ...

    def response_header(self) -> dict[str, list[str]]:
        ...

    def response_trailer(self) -> dict[str, list[str]]:
        ...

    def close_response(self) -> None:
        ...


@runtime_checkable
class StreamingHandlerConn(Protocol):
    """The server's view of a message exchange.

    ``receive`` raises an :class:`EOFError` once the client has finished
    sending.
    """

    def spec(self) -> Spec:
        ...

    def peer(self) -> Peer:
        ...

    def receive(self, message) -> None:
        ...

    def request_header(self) -> dict[str, list[str]]:
        ...

    def send(self, message) -> None:
        ...

    def response_header(self) -> dict[str, list[str]]:
        ...

    def response_trailer(self) -> dict[str, list[str]]:
        ...


def _new_initialized(conn, new_message: Callable[[], Any], initializer: Optional[Initializer]):
    message = new_message()
    if initializer is not None:
        initializer(conn.spec(), message)
    return message


def receive_unary_message(conn, new_message: Callable[[], Any], initializer: Optional[Initializer], what: str):
    """Receive the single message of a unary stream.

    A stream with no message or with more than one is a cardinality
    violation and raises a :class:`ConnectError` with code ``unimplemented``.
    """
    message = _new_initialized(conn, new_message, initializer)
    try:
        conn.receive(message)
    except EOFError as exc:
        raise ConnectError(Code.UNIMPLEMENTED, f"unary {what} has zero messages") from exc

    # A well-formed stream ends right after its one message.
    extra = _new_initialized(conn, new_message, initializer)
    try:
        conn.receive(extra)
    except EOFError:
        return message
    raise ConnectError(Code.UNIMPLEMENTED, f"unary {what} has multiple messages")


def receive_unary_response(conn, new_message: Callable[[], Any], initializer: Optional[Initializer] = None) -> Response:
    """Receive a unary response and attach the response headers and trailers."""
    message = receive_unary_message(conn, new_message, initializer, "response")
    return Response(
        msg=message,
        header=conn.response_header(),
        trailer=conn.response_trailer(),
    )


def receive_unary_request(conn, new_message: Callable[[], Any], initializer: Optional[Initializer] = None) -> Request:
    """Receive a unary request and attach its headers and call metadata."""
    message = receive_unary_message(conn, new_message, initializer, "request")
    method = HTTP_METHOD_POST
    get_method = getattr(conn, "http_method", None)
    if callable(get_method):
        method = get_method()
    return Request(
        msg=message,
        spec=conn.spec(),
        peer=conn.peer(),
        header=conn.request_header(),
        http_method=method,
    )