"""
Errors raised inside the cache layer.

Store and serialization errors never escape the public cache operations;
they are caught at the strategy boundary and turned into fallback results.
"""


class CacheError(Exception):
    """Base class for cache layer errors."""


class SerializationError(CacheError):
    """A value could not be encoded for, or decoded from, the store."""


class StoreProtocolError(CacheError):
    """
    The in-memory store rejected a command.

    Mirrors the errors Redis answers with, e.g. WRONGTYPE when a hash
    command targets a list, or an out of range list index.
    """
