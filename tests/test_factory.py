"""
Tests for cache construction from settings.
"""

from unittest.mock import MagicMock, patch

import pytest
import redis
import structlog

from tinyurl_cache.cache import (
    CacheBackend,
    CacheFactory,
    InMemoryCache,
    JsonSerializer,
    NullCache,
    RawSerializer,
    RedisCache,
)
from tinyurl_cache.config import Settings
from tinyurl_cache.dependencies import build_cache
from tinyurl_cache.logging_config import configure_logging


@pytest.fixture
def config():
    return Settings(
        cache_backend="memory",
        redis_url="redis://cache.internal:6379/2",
        redis_socket_timeout=0.5,
        redis_socket_connect_timeout=0.25,
    )


@pytest.fixture
def reset_structlog():
    yield
    structlog.reset_defaults()


class TestCacheFactory:
    """Test backend selection"""

    def test_memory_backend(self, config):
        cache = CacheFactory.create(CacheBackend.MEMORY, config)
        assert isinstance(cache, InMemoryCache)
        assert isinstance(cache.serializer, JsonSerializer)

    def test_null_backend(self, config):
        assert isinstance(CacheFactory.create(CacheBackend.NULL, config), NullCache)

    def test_new_instance_per_call(self, config):
        """Test that the factory never hands out a shared instance"""
        first = CacheFactory.create(CacheBackend.MEMORY, config)
        second = CacheFactory.create(CacheBackend.MEMORY, config)
        assert first is not second

    def test_redis_backend(self, config):
        """Test that a reachable Redis yields a RedisCache built from settings"""
        client = MagicMock(spec=redis.Redis)
        with patch("tinyurl_cache.cache.factory.redis.from_url", return_value=client) as from_url:
            cache = CacheFactory.create(CacheBackend.REDIS, config)

        assert isinstance(cache, RedisCache)
        assert cache.redis is client
        client.ping.assert_called_once_with()
        from_url.assert_called_once_with(
            "redis://cache.internal:6379/2",
            decode_responses=False,
            socket_connect_timeout=0.25,
            socket_timeout=0.5,
        )

    def test_unreachable_redis_falls_back_to_memory(self, config, captured_logs):
        client = MagicMock(spec=redis.Redis)
        client.ping.side_effect = redis.ConnectionError("Connection refused")
        with patch("tinyurl_cache.cache.factory.redis.from_url", return_value=client):
            cache = CacheFactory.create(CacheBackend.REDIS, config)

        assert isinstance(cache, InMemoryCache)
        assert captured_logs[0]["event"] == "redis_connection_failed"
        assert captured_logs[0]["log_level"] == "warning"

    def test_malformed_redis_url_falls_back_to_memory(self, captured_logs):
        """Test that a URL redis cannot parse still yields a working cache"""
        config = Settings(redis_url="localhost:6379")

        cache = CacheFactory.create(CacheBackend.REDIS, config)

        assert isinstance(cache, InMemoryCache)
        assert captured_logs[0]["event"] == "redis_connection_failed"

    def test_unknown_backend(self, config):
        with pytest.raises(ValueError):
            CacheFactory.create("memcached", config)

    def test_from_settings(self):
        cache = CacheFactory.from_settings(Settings(cache_backend="null"))
        assert isinstance(cache, NullCache)

    def test_unknown_backend_name(self):
        with pytest.raises(ValueError):
            CacheFactory.from_settings(Settings(cache_backend="memcached"))

    def test_raw_serializer_setting(self):
        cache = CacheFactory.from_settings(Settings(cache_backend="memory", cache_serializer="raw"))
        assert isinstance(cache.serializer, RawSerializer)

    def test_unknown_serializer(self):
        with pytest.raises(ValueError):
            CacheFactory.from_settings(Settings(cache_backend="memory", cache_serializer="pickle"))


class TestBuildCache:
    """Test startup wiring"""

    def test_build_cache_configures_logging(self, config):
        with patch("tinyurl_cache.dependencies.configure_logging") as configure:
            cache = build_cache(config)

        assert isinstance(cache, InMemoryCache)
        configure.assert_called_once_with(config.log_level)

    def test_configure_logging(self, reset_structlog):
        configure_logging("debug")

        assert structlog.is_configured()


class TestSettings:
    """Test settings loading"""

    def test_defaults(self, monkeypatch):
        for name in ("CACHE_BACKEND", "CACHE_SERIALIZER", "REDIS_URL"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)

        assert settings.cache_backend == "redis"
        assert settings.cache_serializer == "json"
        assert settings.redis_url == "redis://localhost:6379/0"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("CACHE_BACKEND", "null")
        monkeypatch.setenv("REDIS_SOCKET_TIMEOUT", "5")

        settings = Settings(_env_file=None)
        assert settings.cache_backend == "null"
        assert settings.redis_socket_timeout == 5.0
