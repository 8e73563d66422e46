"""Pooled compressors, decompressors and byte buffers."""

from __future__ import annotations

import io
import threading
import zlib
from typing import Callable, Generic, Protocol, TypeVar, runtime_checkable

from .code import Code, ConnectError

COMPRESSION_GZIP = "gzip"
COMPRESSION_IDENTITY = "identity"

INITIAL_BUFFER_SIZE = 512
MAX_RECYCLE_BUFFER_SIZE = 8 * 1024 * 1024  # larger buffers are not kept

_CHUNK = 64 * 1024
_GZIP_WBITS = 31  # gzip container, no zlib or raw fallback

_T = TypeVar("_T")


@runtime_checkable
class Decompressor(Protocol):
    """A reusable reader that decompresses an underlying source."""

    def read(self, size: int = -1) -> bytes:
        ...

    def close(self) -> None:
        """Release the decompressor, but not the underlying source."""

    def reset(self, reader) -> None:
        """Discard any state and start reading from a new compressed source."""


@runtime_checkable
class Compressor(Protocol):
    """A reusable writer that compresses into an underlying sink."""

    def write(self, data) -> int:
        ...

    def close(self) -> None:
        """Flush buffered data to the sink; the sink itself stays open."""

    def reset(self, writer) -> None:
        """Discard any state and start writing to a new sink."""


class _Discard:
    def write(self, data) -> int:
        return len(data)


def _as_reader(source):
    if hasattr(source, "read"):
        return source
    return io.BytesIO(bytes(source))


def _read_all(source) -> bytes:
    if hasattr(source, "read"):
        return source.read()
    return bytes(source)


class GzipDecompressor:
    """Streaming gzip decoder that accepts concatenated gzip members."""

    def __init__(self, reader=None):
        self._source = io.BytesIO()
        self._inflater = zlib.decompressobj(_GZIP_WBITS)
        self._pending = bytearray()
        self._eof = True
        if reader is not None:
            self.reset(reader)

    def reset(self, reader) -> None:
        """Start decoding ``reader``; the gzip header is checked at once."""
        self._source = _as_reader(reader)
        self._inflater = zlib.decompressobj(_GZIP_WBITS)
        self._pending = bytearray()
        self._eof = False
        head = self._source.read(_CHUNK)
        if not head:
            self._eof = True
            raise EOFError("gzip: empty compressed stream")
        self._pending += self._inflater.decompress(head, _CHUNK)

    def _fill(self) -> None:
        inflater = self._inflater
        if inflater.eof:
            data = inflater.unused_data or self._source.read(_CHUNK)
            if not data:
                self._eof = True
                return
            inflater = self._inflater = zlib.decompressobj(_GZIP_WBITS)
        elif inflater.unconsumed_tail:
            data = inflater.unconsumed_tail
        else:
            data = self._source.read(_CHUNK)
            if not data:
                raise EOFError("gzip: unexpected end of compressed stream")
        self._pending += inflater.decompress(data, _CHUNK)

    def read(self, size: int = -1) -> bytes:
        while not self._eof and (size < 0 or len(self._pending) < size):
            self._fill()
        if size < 0 or size >= len(self._pending):
            out = bytes(self._pending)
            self._pending.clear()
            return out
        out = bytes(self._pending[:size])
        del self._pending[:size]
        return out

    def close(self) -> None:
        self._pending.clear()
        self._eof = True


class GzipCompressor:
    """Streaming gzip encoder writing into a sink."""

    def __init__(self, writer=None, level: int = zlib.Z_DEFAULT_COMPRESSION):
        self._level = level
        self._sink = _Discard()
        self._deflater = None
        self.reset(writer)

    def reset(self, writer) -> None:
        self._sink = writer if writer is not None else _Discard()
        self._deflater = zlib.compressobj(self._level, zlib.DEFLATED, _GZIP_WBITS)

    def write(self, data) -> int:
        if self._deflater is None:
            raise ValueError("write to closed compressor")
        chunk = self._deflater.compress(bytes(data))
        if chunk:
            self._sink.write(chunk)
        return len(data)

    def close(self) -> None:
        if self._deflater is None:
            return
        self._sink.write(self._deflater.flush())
        self._deflater = None


class _InstancePool(Generic[_T]):
    def __init__(self, factory: Callable[[], _T] | None):
        self._factory = factory
        self._free: list[_T] = []
        self._lock = threading.Lock()

    def get(self) -> _T | None:
        with self._lock:
            if self._free:
                return self._free.pop()
        return self._factory() if self._factory is not None else None

    def put(self, item: _T) -> None:
        with self._lock:
            self._free.append(item)


class BufferPool:
    """A thread-safe pool of reusable byte buffers."""

    def __init__(self):
        self._free: list[bytearray] = []
        self._lock = threading.Lock()

    def get(self) -> bytearray:
        with self._lock:
            if self._free:
                return self._free.pop()
        return bytearray()

    def put(self, buffer: bytearray) -> None:
        """Return a buffer; buffers above the recycle limit are dropped."""
        if len(buffer) > MAX_RECYCLE_BUFFER_SIZE:
            return
        buffer.clear()
        with self._lock:
            self._free.append(buffer)


class CompressionPool:
    """Pools of compressors and decompressors for one algorithm."""

    def __init__(
        self,
        new_decompressor: Callable[[], Decompressor] | None,
        new_compressor: Callable[[], Compressor] | None,
    ):
        self._decompressors: _InstancePool[Decompressor] = _InstancePool(new_decompressor)
        self._compressors: _InstancePool[Compressor] = _InstancePool(new_compressor)

    def decompress(self, src, read_max_bytes: int = 0) -> bytes:
        """Decompress ``src``, enforcing ``read_max_bytes`` when it is positive."""
        try:
            decompressor = self._get_decompressor(src)
        except Exception as exc:
            raise ConnectError(Code.INVALID_ARGUMENT, f"get decompressor: {exc}", cause=exc) from exc

        limited = read_max_bytes > 0
        out = bytearray()
        try:
            while True:
                want = min(_CHUNK, read_max_bytes + 1 - len(out)) if limited else _CHUNK
                if want <= 0:
                    break
                chunk = decompressor.read(want)
                if not chunk:
                    break
                out += chunk
        except ConnectError:
            self._put_decompressor_quietly(decompressor)
            raise
        except Exception as exc:
            self._put_decompressor_quietly(decompressor)
            raise ConnectError(Code.INVALID_ARGUMENT, f"decompress: {exc}", cause=exc) from exc

        if limited and len(out) > read_max_bytes:
            discarded = 0
            try:
                while chunk := decompressor.read(_CHUNK):
                    discarded += len(chunk)
            except Exception as exc:
                self._put_decompressor_quietly(decompressor)
                raise ConnectError(
                    Code.RESOURCE_EXHAUSTED,
                    f"message is larger than configured max {read_max_bytes}"
                    f" - unable to determine message size: {exc}",
                    cause=exc,
                ) from exc
            self._put_decompressor_quietly(decompressor)
            raise ConnectError(
                Code.RESOURCE_EXHAUSTED,
                f"message size {len(out) + discarded} is larger than configured max {read_max_bytes}",
            )

        try:
            self._put_decompressor(decompressor)
        except Exception as exc:
            raise ConnectError(Code.UNKNOWN, f"recycle decompressor: {exc}", cause=exc) from exc
        return bytes(out)

    def compress(self, src) -> bytes:
        """Compress ``src`` and return the compressed bytes."""
        sink = io.BytesIO()
        try:
            compressor = self._get_compressor(sink)
        except Exception as exc:
            raise ConnectError(Code.UNKNOWN, f"get compressor: {exc}", cause=exc) from exc
        try:
            compressor.write(_read_all(src))
        except ConnectError:
            self._put_compressor_quietly(compressor)
            raise
        except Exception as exc:
            self._put_compressor_quietly(compressor)
            raise ConnectError(Code.INTERNAL, f"compress: {exc}", cause=exc) from exc
        try:
            self._put_compressor(compressor)
        except Exception as exc:
            raise ConnectError(Code.INTERNAL, f"recycle compressor: {exc}", cause=exc) from exc
        return sink.getvalue()

    def _get_decompressor(self, src) -> Decompressor:
        decompressor = self._decompressors.get()
        if decompressor is None or not isinstance(decompressor, Decompressor):
            raise TypeError("expected Decompressor, got incorrect type from pool")
        decompressor.reset(_as_reader(src))
        return decompressor

    def _put_decompressor(self, decompressor: Decompressor) -> None:
        decompressor.close()
        # Resetting to an empty source drops the reference to the old one;
        # most formats complain about the missing header, which is harmless.
        try:
            decompressor.reset(io.BytesIO())
        except Exception:
            pass
        self._decompressors.put(decompressor)

    def _put_decompressor_quietly(self, decompressor: Decompressor) -> None:
        try:
            self._put_decompressor(decompressor)
        except Exception:
            pass

    def _get_compressor(self, sink) -> Compressor:
        compressor = self._compressors.get()
        if compressor is None or not isinstance(compressor, Compressor):
            raise TypeError("expected Compressor, got incorrect type from pool")
        compressor.reset(sink)
        return compressor

    def _put_compressor(self, compressor: Compressor) -> None:
        compressor.close()
        compressor.reset(_Discard())
        self._compressors.put(compressor)

    def _put_compressor_quietly(self, compressor: Compressor) -> None:
        try:
            self._put_compressor(compressor)
        except Exception:
            pass


def new_compression_pool(
    new_decompressor: Callable[[], Decompressor] | None,
    new_compressor: Callable[[], Compressor] | None,
) -> CompressionPool | None:
    """Build a pool, or return None when neither factory is given."""
    if new_decompressor is None and new_compressor is None:
        return None
    return CompressionPool(new_decompressor, new_compressor)


class NamedCompressionPools:
    """A read-only view of compression pools by name."""

    def __init__(self, name_to_pool: dict[str, CompressionPool | None], comma_separated_names: str):
        self._name_to_pool = dict(name_to_pool)
        self._comma_separated_names = comma_separated_names

    def get(self, name: str) -> CompressionPool | None:
        """The pool for ``name``; None for identity, empty or unknown names."""
        if name in ("", COMPRESSION_IDENTITY):
            return None
        return self._name_to_pool.get(name)

    def contains(self, name: str) -> bool:
        return name in self._name_to_pool

    def comma_separated_names(self) -> str:
        """Registered names, most preferred first."""
        return self._comma_separated_names


def new_read_only_compression_pools(
    name_to_pool: dict[str, CompressionPool | None],
    reversed_names: list[str],
) -> NamedCompressionPools:
    """Build a view in which the last registered name is the most preferred."""
    names = list(dict.fromkeys(reversed(reversed_names)))
    return NamedCompressionPools(name_to_pool, ",".join(names))