# connectwire

Pure-Python building blocks for RPC clients in the style of the Connect,
gRPC and gRPC-Web protocols. It has no third-party dependencies.

## Modules

- `connectwire.code`: the `Code` enumeration of RPC status codes. `Code.to_text`
  gives the wire name (`"not_found"`, or `"code_999"` for a value outside the
  canonical range) and `Code.from_text` parses it back, raising `ValueError`
  for anything invalid. `ConnectError` is an exception carrying a `Code` and a
  message; `StreamEnded` is a `ConnectError` that is also an `EOFError`, used
  to signal the end of a stream. `code_of` returns the code of the first
  `ConnectError` in an exception's cause chain, or `Code.UNKNOWN`.
- `connectwire.compression`: `GzipCompressor` and `GzipDecompressor`, the
  `Compressor` and `Decompressor` protocols, `CompressionPool` (built with
  `new_compression_pool`) whose `decompress` enforces a maximum size,
  `NamedCompressionPools` (built with `new_read_only_compression_pools`, the
  last registered name being the most preferred) and a thread-safe
  `BufferPool`.
- `connectwire.connect`: `StreamType`, `Spec`, `Peer`, `new_peer_from_url`,
  the `Request` and `Response` wrappers, the `StreamingClientConn` and
  `StreamingHandlerConn` protocols, and `receive_unary_message`,
  `receive_unary_response` and `receive_unary_request`, which insist that a
  unary stream holds exactly one message and otherwise raise a
  `ConnectError` with code `unimplemented`.
- `connectwire.client_stream`: `ClientStreamForClient`,
  `ServerStreamForClient` (also iterable over its messages) and
  `BidiStreamForClient`, the client's views of the three streaming call
  shapes, layered over any `StreamingClientConn`.

## Example

```python
from connectwire.code import Code, ConnectError, code_of
from connectwire.compression import (
    GzipCompressor,
    GzipDecompressor,
    new_compression_pool,
    new_read_only_compression_pools,
)

assert Code.from_text("not_found") is Code.NOT_FOUND
assert Code.NOT_FOUND.to_text() == "not_found"

err = ConnectError(Code.UNAVAILABLE, "failed to foo")
assert code_of(err) is Code.UNAVAILABLE

pool = new_compression_pool(GzipDecompressor, GzipCompressor)
compressed = pool.compress(b"hello, world")
assert pool.decompress(compressed) == b"hello, world"

try:
    pool.decompress(compressed, read_max_bytes=4)
except ConnectError as exc:
    assert exc.code is Code.RESOURCE_EXHAUSTED

pools = new_read_only_compression_pools({"gzip": pool}, ["gzip"])
assert pools.get("gzip") is pool
assert pools.get("identity") is None
```

## What it does not do

The package has no message codecs, no length-prefixed message framing and no
HTTP transport. The stream views in `connectwire.client_stream` and the unary
helpers in `connectwire.connect` work over a `StreamingClientConn` that you
supply; the package itself does not open connections, serialize messages or
serve requests.

## Tests

```
pip install -e ".[test]"
pytest
```