"""
Cache module for the TinyURL service.
Implements Strategy Pattern for flexible cache backends.
"""

from .strategies import CacheStrategy, RedisCache, NullCache, TTL_MISSING, TTL_NO_EXPIRY
from .memory import InMemoryCache
from .factory import CacheFactory, CacheBackend
from .results import CacheResult
from .serializers import Serializer, JsonSerializer, RawSerializer, SerializerType

__all__ = [
    "CacheStrategy",
    "RedisCache",
    "InMemoryCache",
    "NullCache",
    "CacheFactory",
    "CacheBackend",
    "CacheResult",
    "Serializer",
    "JsonSerializer",
    "RawSerializer",
    "SerializerType",
    "TTL_MISSING",
    "TTL_NO_EXPIRY",
]
