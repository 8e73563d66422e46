"""The client's views of client-streaming, server-streaming and bidi RPCs."""

from __future__ import annotations

from typing import Any, Callable, Iterator, Optional

from .connect import Initializer, Peer, Response, Spec, StreamingClientConn, receive_unary_response


def _new_message(new_message: Optional[Callable[[], Any]]) -> Any:
    return new_message() if new_message is not None else None


class ClientStreamForClient:
    """The client's view of a client streaming RPC.

    A stream built with ``err`` fails every call with that error.
    """

    def __init__(
        self,
        conn: Optional[StreamingClientConn] = None,
        new_message: Optional[Callable[[], Any]] = None,
        initializer: Optional[Initializer] = None,
        err: Optional[BaseException] = None,
    ):
        self._conn = conn
        self._new_message = new_message
        self._initializer = initializer
        self._err = err

    def spec(self) -> Spec:
        return self._conn.spec()

    def peer(self) -> Peer:
        return self._conn.peer()

    def request_header(self) -> dict[str, list[str]]:
        """The request headers; they go out with the first send."""
        if self._err is not None:
            return {}
        return self._conn.request_header()

    def send(self, request) -> None:
        """Send a message; ``None`` sends only the headers.

        Raises an :class:`EOFError` if the server has already answered; call
        :meth:`close_and_receive` to get its error.
        """
        if self._err is not None:
            raise self._err
        self._conn.send(request)

    def close_and_receive(self) -> Response:
        """Close the send side and wait for the single response."""
        if self._err is not None:
            raise self._err
        try:
            self._conn.close_request()
            response = receive_unary_response(
                self._conn, lambda: _new_message(self._new_message), self._initializer
            )
        except BaseException:
            try:
                self._conn.close_response()
            except Exception:
                pass
            raise
        self._conn.close_response()
        return response

    def conn(self) -> StreamingClientConn:
        """The underlying connection."""
        if self._err is not None:
            raise self._err
        return self._conn


class ServerStreamForClient:
    """The client's view of a server streaming RPC.

    Call :meth:`receive` until it returns False, reading each message with
    :meth:`msg`, then check :meth:`err`. Iterating yields the messages.
    """

    def __init__(
        self,
        conn: Optional[StreamingClientConn] = None,
        new_message: Optional[Callable[[], Any]] = None,
        initializer: Optional[Initializer] = None,
        construct_err: Optional[BaseException] = None,
    ):
        self._conn = conn
        self._new_message = new_message
        self._initializer = initializer
        self._msg: Any = None
        self._construct_err = construct_err
        self._receive_err: Optional[BaseException] = None

    def receive(self) -> bool:
        """Advance to the next message; False once the stream has stopped."""
        if self._construct_err is not None or self._receive_err is not None:
            return False
        self._msg = _new_message(self._new_message)
        try:
            if self._initializer is not None:
                self._initializer(self._conn.spec(), self._msg)
            self._conn.receive(self._msg)
        except Exception as exc:
            self._receive_err = exc
            return False
        return True

    def msg(self) -> Any:
        """The message from the latest successful :meth:`receive`."""
        if self._msg is None:
            self._msg = _new_message(self._new_message)
        return self._msg

    def err(self) -> Optional[BaseException]:
        """The first error other than the end of stream, or None."""
        if self._construct_err is not None:
            return self._construct_err
        if self._receive_err is not None and not isinstance(self._receive_err, EOFError):
            return self._receive_err
        return None

    def __iter__(self) -> Iterator[Any]:
        while self.receive():
            yield self.msg()
        failure = self.err()
        if failure is not None:
            raise failure

    def response_header(self) -> dict[str, list[str]]:
        if self._construct_err is not None:
            return {}
        return self._conn.response_header()

    def response_trailer(self) -> dict[str, list[str]]:
        """The trailers, complete once the stream has ended."""
        if self._construct_err is not None:
            return {}
        return self._conn.response_trailer()

    def close(self) -> None:
        """Close the receive side of the stream."""
        if self._construct_err is not None:
            raise self._construct_err
        self._conn.close_response()

    def conn(self) -> StreamingClientConn:
        if self._construct_err is not None:
            raise self._construct_err
        return self._conn


class BidiStreamForClient:
    """The client's view of a bidirectional streaming RPC."""

    def __init__(
        self,
        conn: Optional[StreamingClientConn] = None,
        new_message: Optional[Callable[[], Any]] = None,
        initializer: Optional[Initializer] = None,
        err: Optional[BaseException] = None,
    ):
        self._conn = conn
        self._new_message = new_message
        self._initializer = initializer
        self._err = err

    def spec(self) -> Spec:
        return self._conn.spec()

    def peer(self) -> Peer:
        return self._conn.peer()

    def request_header(self) -> dict[str, list[str]]:
        if self._err is not None:
            return {}
        return self._conn.request_header()

    def send(self, msg) -> None:
        """Send a message; ``None`` sends only the headers."""
        if self._err is not None:
            raise self._err
        self._conn.send(msg)

    def close_request(self) -> None:
        if self._err is not None:
            raise self._err
        self._conn.close_request()

    def receive(self) -> Any:
        """Receive the next message; raises an EOFError once the server is done."""
        if self._err is not None:
            raise self._err
        message = _new_message(self._new_message)
        if self._initializer is not None:
            self._initializer(self._conn.spec(), message)
        self._conn.receive(message)
        return message

    def close_response(self) -> None:
        if self._err is not None:
            raise self._err
        self._conn.close_response()

    def response_header(self) -> dict[str, list[str]]:
        if self._err is not None:
            return {}
        return self._conn.response_header()

    def response_trailer(self) -> dict[str, list[str]]:
        if self._err is not None:
            return {}
        return self._conn.response_trailer()

    def conn(self) -> StreamingClientConn:
        if self._err is not None:
            raise self._err
        return self._conn