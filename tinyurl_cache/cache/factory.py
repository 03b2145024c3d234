"""
Factory for creating cache instances.

Every call builds a new instance; the caller owns it and passes it on
explicitly. There is no process-wide cached instance.
"""

from enum import Enum
from typing import Optional

import redis

from tinyurl_cache.config import Settings, settings as default_settings
from tinyurl_cache.logging_config import get_logger
from .memory import InMemoryCache
from .serializers import SerializerType, get_serializer
from .strategies import CacheStrategy, NullCache, RedisCache

logger = get_logger(__name__)


class CacheBackend(Enum):
    """Available cache backends"""
    REDIS = "redis"
    MEMORY = "memory"
    NULL = "null"


class CacheFactory:
    """
    Simple factory for creating cache instances.

    Gets configuration from a Settings object, the module level settings
    unless one is passed in.
    """

    @classmethod
    def create(cls, backend: CacheBackend, config: Optional[Settings] = None) -> CacheStrategy:
        """
        Create a cache instance.

        Args:
            backend: Type of cache backend (from enum)
            config: Settings to read connection details from

        Returns:
            New cache instance. A Redis backend that cannot be reached, or
            whose redis_url cannot be parsed, falls back to an in-memory cache.

        Raises:
            ValueError: for an unknown backend or serializer
        """
        config = config or default_settings
        serializer = get_serializer(SerializerType(config.cache_serializer))

        if backend == CacheBackend.REDIS:
            try:
                redis_client = cls.create_redis_client(config)

                # Test connection immediately
                redis_client.ping()

                logger.info("cache_initialized", backend=backend.value, redis_url=config.redis_url)
                return RedisCache(redis_client, serializer)

            except (redis.RedisError, ValueError) as e:
                logger.warning(
                    "redis_connection_failed",
                    redis_url=config.redis_url,
                    error=str(e),
                    fallback=CacheBackend.MEMORY.value,
                )
                return InMemoryCache(serializer)

        elif backend == CacheBackend.MEMORY:
            logger.info("cache_initialized", backend=backend.value)
            return InMemoryCache(serializer)

        elif backend == CacheBackend.NULL:
            logger.info("cache_initialized", backend=backend.value)
            return NullCache()

        raise ValueError(f"Unknown cache backend: {backend}")

    @staticmethod
    def create_redis_client(config: Settings) -> redis.Redis:
        """
        Build a Redis client from settings.

        Responses stay as bytes; decoding is the serializer's job. Timeouts
        configured here are the only timeouts cache calls are subject to.
        """
        return redis.from_url(
            config.redis_url,
            decode_responses=False,
            socket_connect_timeout=config.redis_socket_connect_timeout,
            socket_timeout=config.redis_socket_timeout,
        )

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> CacheStrategy:
        """Create the backend named by ``cache_backend`` in settings."""
        config = config or default_settings
        return cls.create(CacheBackend(config.cache_backend), config)
