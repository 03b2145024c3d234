"""
Cache strategies using Strategy Pattern.
Allows switching between different cache backends (Redis, In-Memory, Null).

Every operation is a synchronous round trip to the backing store. Store
and transport errors are caught at this boundary, logged, and turned into
a fallback result (False, None, empty collection or zero). Invalid
arguments raise TypeError or ValueError before the store is touched.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from redis.exceptions import RedisError

from tinyurl_cache.exceptions import CacheError, SerializationError
from tinyurl_cache.logging_config import get_logger
from .results import CacheResult
from .serializers import JsonSerializer, Serializer

logger = get_logger(__name__)

# get_ttl sentinels, same values Redis answers TTL with
TTL_NO_EXPIRY = -1
TTL_MISSING = -2

# Errors contained at the strategy boundary
STORE_ERRORS = (RedisError, CacheError)


def has_ttl(ttl: Optional[int]) -> bool:
    """A TTL of None, zero or less means "no expiry"."""
    return ttl is not None and ttl > 0


def check_delta(delta: int, operation: str) -> None:
    """Scalar counters only accept a positive integer magnitude."""
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise TypeError(f"{operation} delta must be an int, got {type(delta).__name__}")
    if delta <= 0:
        raise ValueError(f"{operation} delta must be greater than 0, got {delta}")


def decode_members(serializer: Serializer, raw: Iterable[bytes]) -> Set[Any]:
    """Decode stored set members. JSON lists and objects cannot be members."""
    try:
        return {serializer.loads(data) for data in raw}
    except TypeError as e:
        raise SerializationError(f"Set member is not hashable: {e}") from e


def decode_field(name: bytes) -> str:
    """Hash field names are UTF-8 text."""
    try:
        return name.decode("utf-8")
    except UnicodeDecodeError as e:
        raise SerializationError(f"Hash field name is not UTF-8: {name!r}") from e


def log_failure(operation: str, key: str, error: Exception) -> None:
    logger.warning(
        "cache_operation_failed",
        operation=operation,
        key=key,
        error=f"{type(error).__name__}: {error}",
    )


class CacheStrategy(ABC):
    """
    Abstract base class for cache strategies.

    This is the Strategy Pattern interface - allows multiple cache implementations
    without changing the code that records short URL data in the cache.

    Four value shapes live under one flat key namespace: scalar, hash, set
    and list. Callers cannot tell "empty" from "failed" on the plain read
    operations; the ``*_result`` variants return a CacheResult that can.
    """

    # ------------------------------------------------------------------ common

    @abstractmethod
    def expire(self, key: str, ttl: int) -> bool:
        """
        Set a key's time to live.

        Args:
            key: Cache key
            ttl: Seconds to live. Zero or less is a no-op that still succeeds.

        Returns:
            True if successful, False otherwise
        """
        pass

    @abstractmethod
    def get_ttl(self, key: str) -> int:
        """
        Get remaining time to live.

        Args:
            key: Cache key

        Returns:
            Remaining seconds, TTL_NO_EXPIRY for a persistent key,
            TTL_MISSING if the key does not exist or the call failed
        """
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        """
        Check if key exists in cache.

        Args:
            key: Cache key

        Returns:
            True if exists, False otherwise
        """
        pass

    @abstractmethod
    def delete(self, *keys: str) -> None:
        """
        Delete one or more keys (best effort).

        Args:
            keys: Cache keys. Nothing happens when none are given.
        """
        pass

    @abstractmethod
    def ping(self) -> bool:
        """Check that the store is reachable."""
        pass

    @abstractmethod
    def clear(self) -> bool:
        """
        Clear all cache entries.

        Returns:
            True if successful
        """
        pass

    # ------------------------------------------------------------------ scalar

    def get(self, key: str) -> Any:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        return self.get_result(key).value_or(None)

    @abstractmethod
    def get_result(self, key: str) -> CacheResult[Any]:
        """Like get(), but reports whether the lookup itself failed."""
        pass

    @abstractmethod
    def set_if_absent(self, key: str, value: Any) -> bool:
        """
        Store a value only if the key does not exist yet. Never overwrites.

        Args:
            key: Cache key
            value: Value to cache

        Returns:
            True if the value was stored, False if the key already existed
            or the call failed
        """
        pass

    @abstractmethod
    def set_with_ttl(self, key: str, value: Any, ttl: int) -> bool:
        """
        Store a value, replacing any previous one.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds. Zero or less stores without expiry.

        Returns:
            True if successful, False otherwise
        """
        pass

    @abstractmethod
    def increment(self, key: str, delta: int) -> int:
        """
        Increment an integer counter, creating it at 0 if absent.

        Args:
            key: Cache key
            delta: Amount to add, must be greater than 0

        Returns:
            New counter value, or 0 if the call failed

        Raises:
            TypeError: if delta is not an int
            ValueError: if delta is not positive
        """
        pass

    @abstractmethod
    def decrement(self, key: str, delta: int) -> int:
        """
        Decrement an integer counter, creating it at 0 if absent.

        Args:
            key: Cache key
            delta: Amount to subtract, must be greater than 0

        Returns:
            New counter value, or 0 if the call failed

        Raises:
            TypeError: if delta is not an int
            ValueError: if delta is not positive
        """
        pass

    # ------------------------------------------------------------------ hash

    @abstractmethod
    def hash_get(self, key: str, field: str) -> Any:
        """Get one hash field, or None."""
        pass

    def hash_get_all(self, key: str) -> Dict[str, Any]:
        """
        Get every field of a hash.

        Returns:
            Field to value mapping, empty if the key is absent or the call failed
        """
        return self.hash_get_all_result(key).value_or({})

    @abstractmethod
    def hash_get_all_result(self, key: str) -> CacheResult[Dict[str, Any]]:
        """Like hash_get_all(), but reports whether the lookup itself failed."""
        pass

    @abstractmethod
    def hash_set_all(self, key: str, mapping: Mapping[str, Any], ttl: Optional[int] = None) -> bool:
        """
        Upsert several hash fields. Fields missing from ``mapping`` are kept.

        Args:
            key: Cache key
            mapping: Field to value mapping
            ttl: Optional time to live for the whole hash, replacing the old one

        Returns:
            True if successful, False otherwise
        """
        pass

    @abstractmethod
    def hash_set(self, key: str, field: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Upsert one hash field, creating the hash if needed.

        Args:
            key: Cache key
            field: Field name
            value: Value to store
            ttl: Optional time to live for the whole hash, replacing the old one

        Returns:
            True if successful, False otherwise
        """
        pass

    @abstractmethod
    def hash_delete(self, key: str, *fields: str) -> int:
        """Remove hash fields. Returns how many existed."""
        pass

    @abstractmethod
    def hash_exists(self, key: str, field: str) -> bool:
        """Check if a hash has a field."""
        pass

    @abstractmethod
    def hash_increment(self, key: str, field: str, delta: float) -> float:
        """
        Add a signed amount to a hash field, creating it at 0 if absent.

        Unlike increment(), any sign is accepted.

        Returns:
            New field value, or 0.0 if the call failed
        """
        pass

    @abstractmethod
    def hash_decrement(self, key: str, field: str, delta: float) -> float:
        """Subtract a signed amount from a hash field. See hash_increment()."""
        pass

    # ------------------------------------------------------------------ set

    def set_members(self, key: str) -> Set[Any]:
        """
        Get every member of a set.

        Returns:
            Members, empty if the key is absent or the call failed
        """
        return self.set_members_result(key).value_or(set())

    @abstractmethod
    def set_members_result(self, key: str) -> CacheResult[Set[Any]]:
        """Like set_members(), but reports whether the lookup itself failed."""
        pass

    @abstractmethod
    def set_contains(self, key: str, value: Any) -> bool:
        """Check set membership."""
        pass

    @abstractmethod
    def set_add(self, key: str, *values: Any, ttl: Optional[int] = None) -> int:
        """
        Add members to a set.

        Args:
            key: Cache key
            values: Members to add
            ttl: Optional time to live for the whole set

        Returns:
            Number of members that were not already present
        """
        pass

    @abstractmethod
    def set_size(self, key: str) -> int:
        """Number of members in a set."""
        pass

    @abstractmethod
    def set_remove(self, key: str, *values: Any) -> int:
        """Remove members from a set. Returns how many were present."""
        pass

    # ------------------------------------------------------------------ list

    def list_range(self, key: str, start: int = 0, end: int = -1) -> List[Any]:
        """
        Get a slice of a list, both ends inclusive.

        Args:
            key: Cache key
            start: First index
            end: Last index, -1 means through the tail

        Returns:
            Elements in order, empty if the key is absent or the call failed
        """
        return self.list_range_result(key, start, end).value_or([])

    @abstractmethod
    def list_range_result(self, key: str, start: int = 0, end: int = -1) -> CacheResult[List[Any]]:
        """Like list_range(), but reports whether the lookup itself failed."""
        pass

    @abstractmethod
    def list_size(self, key: str) -> int:
        """Length of a list."""
        pass

    @abstractmethod
    def list_index(self, key: str, index: int) -> Any:
        """
        Get the element at a position.

        Args:
            key: Cache key
            index: 0 is the head, -1 is the tail, -2 the one before it

        Returns:
            Element or None
        """
        pass

    @abstractmethod
    def list_append(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Push one element onto the tail."""
        pass

    @abstractmethod
    def list_append_all(self, key: str, values: Iterable[Any], ttl: Optional[int] = None) -> bool:
        """Push several elements onto the tail, keeping their order."""
        pass

    @abstractmethod
    def list_set_index(self, key: str, index: int, value: Any) -> bool:
        """
        Replace the element at a position.

        Returns:
            True if successful, False if the index is out of range or the
            call failed
        """
        pass

    @abstractmethod
    def list_remove(self, key: str, count: int, value: Any) -> int:
        """
        Remove elements equal to value.

        Args:
            key: Cache key
            count: > 0 removes up to count matches from the head,
                   < 0 up to -count matches from the tail, 0 removes all
            value: Element to match

        Returns:
            Number of elements removed
        """
        pass


class RedisCache(CacheStrategy):
    """
    Redis cache implementation.

    Wraps a ready-to-use redis.Redis client created with
    decode_responses=False. Holds no state besides the client and the
    serializer, so it is as thread safe as the client is. Timeouts are
    whatever the client was configured with; nothing is retried.
    """

    def __init__(self, redis_client, serializer: Optional[Serializer] = None):
        """
        Initialize Redis cache.

        Args:
            redis_client: Redis client instance (redis.Redis)
            serializer: Value encoding, JSON by default
        """
        self.redis = redis_client
        self.serializer = serializer or JsonSerializer()

    def _dumps(self, value: Any) -> bytes:
        return self.serializer.dumps(value)

    def _loads(self, data: Optional[bytes]) -> Any:
        return self.serializer.loads(data)

    def _expire_after_write(self, key: str, ttl: Optional[int]) -> None:
        # separate round trip, not atomic with the write before it
        if has_ttl(ttl):
            self.redis.expire(key, ttl)

    # ------------------------------------------------------------------ common

    def expire(self, key: str, ttl: int) -> bool:
        if not has_ttl(ttl):
            return True
        try:
            self.redis.expire(key, ttl)
            return True
        except STORE_ERRORS as e:
            log_failure("expire", key, e)
            return False

    def get_ttl(self, key: str) -> int:
        try:
            return int(self.redis.ttl(key))
        except STORE_ERRORS as e:
            log_failure("get_ttl", key, e)
            return TTL_MISSING

    def exists(self, key: str) -> bool:
        try:
            return bool(self.redis.exists(key))
        except STORE_ERRORS as e:
            log_failure("exists", key, e)
            return False

    def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            if len(keys) == 1:
                self.redis.delete(keys[0])
            else:
                self.redis.delete(*keys)
        except STORE_ERRORS as e:
            log_failure("delete", ",".join(keys), e)

    def ping(self) -> bool:
        try:
            return bool(self.redis.ping())
        except STORE_ERRORS as e:
            log_failure("ping", "", e)
            return False

    def clear(self) -> bool:
        """Clear all Redis keys (use with caution!)"""
        try:
            self.redis.flushdb()
            return True
        except STORE_ERRORS as e:
            log_failure("clear", "*", e)
            return False

    # ------------------------------------------------------------------ scalar

    def get_result(self, key: str) -> CacheResult[Any]:
        try:
            return CacheResult.success(self._loads(self.redis.get(key)))
        except STORE_ERRORS as e:
            log_failure("get", key, e)
            return CacheResult.failure(e)

    def set_if_absent(self, key: str, value: Any) -> bool:
        try:
            return bool(self.redis.set(key, self._dumps(value), nx=True))
        except STORE_ERRORS as e:
            log_failure("set_if_absent", key, e)
            return False

    def set_with_ttl(self, key: str, value: Any, ttl: int) -> bool:
        try:
            data = self._dumps(value)
            if has_ttl(ttl):
                self.redis.set(key, data, ex=ttl)
            else:
                self.redis.set(key, data)
            return True
        except STORE_ERRORS as e:
            log_failure("set_with_ttl", key, e)
            return False

    def increment(self, key: str, delta: int) -> int:
        check_delta(delta, "increment")
        return self._incrby("increment", key, delta)

    def decrement(self, key: str, delta: int) -> int:
        check_delta(delta, "decrement")
        return self._incrby("decrement", key, -delta)

    def _incrby(self, operation: str, key: str, amount: int) -> int:
        try:
            return int(self.redis.incrby(key, amount))
        except STORE_ERRORS as e:
            log_failure(operation, key, e)
            return 0

    # ------------------------------------------------------------------ hash

    def hash_get(self, key: str, field: str) -> Any:
        try:
            return self._loads(self.redis.hget(key, field))
        except STORE_ERRORS as e:
            log_failure("hash_get", key, e)
            return None

    def hash_get_all_result(self, key: str) -> CacheResult[Dict[str, Any]]:
        try:
            raw = self.redis.hgetall(key)
            return CacheResult.success({
                decode_field(name): self._loads(data) for name, data in raw.items()
            })
        except STORE_ERRORS as e:
            log_failure("hash_get_all", key, e)
            return CacheResult.failure(e)

    def hash_set_all(self, key: str, mapping: Mapping[str, Any], ttl: Optional[int] = None) -> bool:
        try:
            encoded = {name: self._dumps(value) for name, value in mapping.items()}
            if encoded:
                self.redis.hset(key, mapping=encoded)
            self._expire_after_write(key, ttl)
            return True
        except STORE_ERRORS as e:
            log_failure("hash_set_all", key, e)
            return False

    def hash_set(self, key: str, field: str, value: Any, ttl: Optional[int] = None) -> bool:
        try:
            self.redis.hset(key, field, self._dumps(value))
            self._expire_after_write(key, ttl)
            return True
        except STORE_ERRORS as e:
            log_failure("hash_set", key, e)
            return False

    def hash_delete(self, key: str, *fields: str) -> int:
        if not fields:
            return 0
        try:
            return int(self.redis.hdel(key, *fields))
        except STORE_ERRORS as e:
            log_failure("hash_delete", key, e)
            return 0

    def hash_exists(self, key: str, field: str) -> bool:
        try:
            return bool(self.redis.hexists(key, field))
        except STORE_ERRORS as e:
            log_failure("hash_exists", key, e)
            return False

    def hash_increment(self, key: str, field: str, delta: float) -> float:
        return self._hincrbyfloat("hash_increment", key, field, delta)

    def hash_decrement(self, key: str, field: str, delta: float) -> float:
        return self._hincrbyfloat("hash_decrement", key, field, -delta)

    def _hincrbyfloat(self, operation: str, key: str, field: str, amount: float) -> float:
        try:
            return float(self.redis.hincrbyfloat(key, field, amount))
        except STORE_ERRORS as e:
            log_failure(operation, key, e)
            return 0.0

    # ------------------------------------------------------------------ set

    def set_members_result(self, key: str) -> CacheResult[Set[Any]]:
        try:
            return CacheResult.success(decode_members(self.serializer, self.redis.smembers(key)))
        except STORE_ERRORS as e:
            log_failure("set_members", key, e)
            return CacheResult.failure(e)

    def set_contains(self, key: str, value: Any) -> bool:
        try:
            return bool(self.redis.sismember(key, self._dumps(value)))
        except STORE_ERRORS as e:
            log_failure("set_contains", key, e)
            return False

    def set_add(self, key: str, *values: Any, ttl: Optional[int] = None) -> int:
        if not values:
            return 0
        try:
            added = int(self.redis.sadd(key, *[self._dumps(value) for value in values]))
            self._expire_after_write(key, ttl)
            return added
        except STORE_ERRORS as e:
            log_failure("set_add", key, e)
            return 0

    def set_size(self, key: str) -> int:
        try:
            return int(self.redis.scard(key))
        except STORE_ERRORS as e:
            log_failure("set_size", key, e)
            return 0

    def set_remove(self, key: str, *values: Any) -> int:
        if not values:
            return 0
        try:
            return int(self.redis.srem(key, *[self._dumps(value) for value in values]))
        except STORE_ERRORS as e:
            log_failure("set_remove", key, e)
            return 0

    # ------------------------------------------------------------------ list

    def list_range_result(self, key: str, start: int = 0, end: int = -1) -> CacheResult[List[Any]]:
        try:
            return CacheResult.success([self._loads(data) for data in self.redis.lrange(key, start, end)])
        except STORE_ERRORS as e:
            log_failure("list_range", key, e)
            return CacheResult.failure(e)

    def list_size(self, key: str) -> int:
        try:
            return int(self.redis.llen(key))
        except STORE_ERRORS as e:
            log_failure("list_size", key, e)
            return 0

    def list_index(self, key: str, index: int) -> Any:
        try:
            return self._loads(self.redis.lindex(key, index))
        except STORE_ERRORS as e:
            log_failure("list_index", key, e)
            return None

    def list_append(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        try:
            self.redis.rpush(key, self._dumps(value))
            self._expire_after_write(key, ttl)
            return True
        except STORE_ERRORS as e:
            log_failure("list_append", key, e)
            return False

    def list_append_all(self, key: str, values: Iterable[Any], ttl: Optional[int] = None) -> bool:
        try:
            encoded = [self._dumps(value) for value in values]
            if encoded:
                self.redis.rpush(key, *encoded)
            self._expire_after_write(key, ttl)
            return True
        except STORE_ERRORS as e:
            log_failure("list_append_all", key, e)
            return False

    def list_set_index(self, key: str, index: int, value: Any) -> bool:
        try:
            self.redis.lset(key, index, self._dumps(value))
            return True
        except STORE_ERRORS as e:
            log_failure("list_set_index", key, e)
            return False

    def list_remove(self, key: str, count: int, value: Any) -> int:
        try:
            return int(self.redis.lrem(key, count, self._dumps(value)))
        except STORE_ERRORS as e:
            log_failure("list_remove", key, e)
            return 0


class NullCache(CacheStrategy):
    """
    Null Object Pattern - cache that does nothing.

    Used for:
    - Testing (when you want to test without cache)
    - Disabling cache in certain environments

    Writes pretend to succeed, reads always miss, counters stay at 0.
    Scalar counters still reject a non-positive delta.
    """

    def expire(self, key: str, ttl: int) -> bool:
        return True

    def get_ttl(self, key: str) -> int:
        return TTL_MISSING

    def exists(self, key: str) -> bool:
        return False

    def delete(self, *keys: str) -> None:
        return None

    def ping(self) -> bool:
        return True

    def clear(self) -> bool:
        return True

    def get_result(self, key: str) -> CacheResult[Any]:
        return CacheResult.success(None)

    def set_if_absent(self, key: str, value: Any) -> bool:
        return True

    def set_with_ttl(self, key: str, value: Any, ttl: int) -> bool:
        return True

    def increment(self, key: str, delta: int) -> int:
        check_delta(delta, "increment")
        return 0

    def decrement(self, key: str, delta: int) -> int:
        check_delta(delta, "decrement")
        return 0

    def hash_get(self, key: str, field: str) -> Any:
        return None

    def hash_get_all_result(self, key: str) -> CacheResult[Dict[str, Any]]:
        return CacheResult.success({})

    def hash_set_all(self, key: str, mapping: Mapping[str, Any], ttl: Optional[int] = None) -> bool:
        return True

    def hash_set(self, key: str, field: str, value: Any, ttl: Optional[int] = None) -> bool:
        return True

    def hash_delete(self, key: str, *fields: str) -> int:
        return 0

    def hash_exists(self, key: str, field: str) -> bool:
        return False

    def hash_increment(self, key: str, field: str, delta: float) -> float:
        return 0.0

    def hash_decrement(self, key: str, field: str, delta: float) -> float:
        return 0.0

    def set_members_result(self, key: str) -> CacheResult[Set[Any]]:
        return CacheResult.success(set())

    def set_contains(self, key: str, value: Any) -> bool:
        return False

    def set_add(self, key: str, *values: Any, ttl: Optional[int] = None) -> int:
        return 0

    def set_size(self, key: str) -> int:
        return 0

    def set_remove(self, key: str, *values: Any) -> int:
        return 0

    def list_range_result(self, key: str, start: int = 0, end: int = -1) -> CacheResult[List[Any]]:
        return CacheResult.success([])

    def list_size(self, key: str) -> int:
        return 0

    def list_index(self, key: str, index: int) -> Any:
        return None

    def list_append(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        return True

    def list_append_all(self, key: str, values: Iterable[Any], ttl: Optional[int] = None) -> bool:
        return True

    def list_set_index(self, key: str, index: int, value: Any) -> bool:
        return True

    def list_remove(self, key: str, count: int, value: Any) -> int:
        return 0
