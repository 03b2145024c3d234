"""
Test configuration and fixtures for the cache layer.
This centralizes all test setup, making individual tests clean.
"""

from unittest.mock import MagicMock

import fakeredis
import pytest
import redis
from structlog.testing import capture_logs

from tinyurl_cache.cache import InMemoryCache, RedisCache

# Every client method a RedisCache may call
REDIS_COMMANDS = [
    "expire", "ttl", "exists", "delete", "ping", "flushdb",
    "get", "set", "incrby",
    "hget", "hgetall", "hset", "hdel", "hexists", "hincrbyfloat",
    "smembers", "sismember", "sadd", "scard", "srem",
    "lrange", "llen", "lindex", "rpush", "lset", "lrem",
]


class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="function")
def clock():
    return FakeClock()


@pytest.fixture(scope="function")
def memory_cache(clock):
    """In-memory cache driven by a fake clock."""
    return InMemoryCache(clock=clock)


@pytest.fixture(scope="function")
def fake_redis():
    """
    Fresh fakeredis client per test.
    A private FakeServer keeps tests from seeing each other's keys.
    """
    client = fakeredis.FakeRedis(server=fakeredis.FakeServer())
    yield client
    client.close()


@pytest.fixture(scope="function")
def redis_cache(fake_redis):
    return RedisCache(fake_redis)


@pytest.fixture(scope="function", params=["memory", "redis"])
def cache(request):
    """
    Run a test against every real backend.
    Both must honour the same contract.
    """
    return request.getfixturevalue(f"{request.param}_cache")


@pytest.fixture(scope="function")
def mock_client():
    """Redis client mock that answers every command successfully."""
    return MagicMock(spec=redis.Redis)


@pytest.fixture(scope="function")
def failing_client():
    """Redis client mock whose every command fails at the transport level."""
    client = MagicMock(spec=redis.Redis)
    for command in REDIS_COMMANDS:
        getattr(client, command).side_effect = redis.ConnectionError("Connection refused")
    return client


@pytest.fixture(scope="function")
def failing_cache(failing_client):
    return RedisCache(failing_client)


@pytest.fixture(scope="function")
def captured_logs():
    """Collect structlog events emitted during a test."""
    with capture_logs() as logs:
        yield logs
