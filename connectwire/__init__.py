"""Status codes, gzip compression pools, unary stream rules and client stream views for RPC."""

__version__ = "0.1.0"

__all__ = [
    "code",
    "compression",
    "connect",
    "client_stream",
]