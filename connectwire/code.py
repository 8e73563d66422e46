"""Protocol status codes and the error types that carry them."""

from __future__ import annotations

import enum
import re

_UINT32_MASK = 0xFFFFFFFF
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_NUMERIC_CODE = re.compile(r"[+-]?[0-9]+")
_NON_CANONICAL_PREFIX = "code_"


class Code(enum.IntEnum):
    """A status code of the protocol.

    The canonical codes match the gRPC status codes. Any other unsigned 32-bit
    value is accepted as a non-canonical code and renders as ``code_<n>``.
    """

    CANCELED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, int) and 0 <= value <= _UINT32_MASK:
            member = int.__new__(cls, value)
            member._name_ = f"CODE_{value}"
            member._value_ = value
            return cls._value2member_map_.setdefault(value, member)
        return None

    @property
    def is_canonical(self) -> bool:
        """Whether this is one of the enumerated codes."""
        return _MIN_CODE <= int(self) <= _MAX_CODE

    def to_text(self) -> str:
        """Return the code's wire name, such as ``not_found`` or ``code_999``."""
        if self.is_canonical:
            return self.name.lower()
        return f"{_NON_CANONICAL_PREFIX}{int(self)}"

    def __str__(self) -> str:
        return self.to_text()

    def __format__(self, format_spec: str) -> str:
        return format(self.to_text(), format_spec)

    @classmethod
    def from_text(cls, text: str | bytes) -> Code:
        """Parse a wire name back into a code.

        Known codes are only accepted by their canonical name; ``code_<n>`` is
        accepted only for values outside the canonical range.
        """
        if isinstance(text, (bytes, bytearray)):
            text = bytes(text).decode("utf-8", errors="replace")
        canonical = _BY_NAME.get(text)
        if canonical is not None:
            return canonical
        if text.startswith(_NON_CANONICAL_PREFIX):
            text = text[len(_NON_CANONICAL_PREFIX):]
            if _NUMERIC_CODE.fullmatch(text):
                number = int(text)
                in_int64 = _INT64_MIN <= number <= _INT64_MAX
                if in_int64 and not _MIN_CODE <= number <= _MAX_CODE:
                    return cls(number & _UINT32_MASK)
        raise ValueError(f"invalid code {text!r}")


_MIN_CODE = int(Code.CANCELED)
_MAX_CODE = int(Code.UNAUTHENTICATED)
_BY_NAME = {member.name.lower(): member for member in Code}


class ConnectError(Exception):
    """An error with a protocol status code."""

    def __init__(self, code: Code | int, message: str = "", *, cause: BaseException | None = None):
        self.code = Code(code)
        if not message and cause is not None:
            message = str(cause)
        self.message = message
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.message:
            return f"{self.code}: {self.message}"
        return str(self.code)


class StreamEnded(ConnectError, EOFError):
    """The end of a message stream.

    It is a :class:`ConnectError` with code ``unknown`` that is also an
    :class:`EOFError`, so ``except EOFError`` catches every end of stream.
    """

    def __init__(self, message: str = "EOF", *, code: Code | int = Code.UNKNOWN, cause: BaseException | None = None):
        super().__init__(code, message, cause=cause)


def code_of(err: BaseException | None) -> Code:
    """Return the code of the first ConnectError in the cause chain, else UNKNOWN."""
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        if isinstance(err, ConnectError):
            return err.code
        seen.add(id(err))
        err = err.__cause__
    return Code.UNKNOWN