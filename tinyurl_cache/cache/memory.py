"""
In-memory cache strategy.

Behaves like the Redis commands RedisCache relies on: TTL expiry, type
checks per key, integer/float counters, inclusive list ranges with
negative offsets, and empty collections disappearing. Values go through
the same serializer as RedisCache, so both backends agree on equality.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set
import math
import threading
import time

from tinyurl_cache.exceptions import StoreProtocolError
from .results import CacheResult
from .serializers import JsonSerializer, Serializer
from .strategies import (
    CacheStrategy,
    STORE_ERRORS,
    TTL_MISSING,
    TTL_NO_EXPIRY,
    check_delta,
    decode_members,
    has_ttl,
    log_failure,
)

STRING = "string"
HASH = "hash"
SET = "set"
LIST = "list"


@dataclass
class _Entry:
    kind: str
    value: Any  # bytes, Dict[str, bytes], Set[bytes] or List[bytes]
    expires_at: Optional[float] = None


def _format_float(value: float) -> bytes:
    # same shape Redis answers HINCRBYFLOAT with: 3.0 -> "3"
    if value.is_integer():
        return str(int(value)).encode("ascii")
    return repr(value).encode("ascii")


class InMemoryCache(CacheStrategy):
    """
    In-memory cache implementation using Python dicts.

    Pros:
    - Very fast (no network overhead)
    - Simple (no external dependencies)
    - Good for development and testing

    Cons:
    - Not distributed (each process has its own cache)
    - Lost on restart

    Expired keys are purged lazily when touched. The clock is injectable
    so tests can move time forward.
    """

    def __init__(
        self,
        serializer: Optional[Serializer] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize in-memory cache.

        Args:
            serializer: Value encoding, JSON by default
            clock: Monotonic seconds source used for TTLs
        """
        self.serializer = serializer or JsonSerializer()
        self._clock = clock
        self._data: Dict[str, _Entry] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------ store internals

    def _live(self, key: str) -> Optional[_Entry]:
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= self._clock():
            del self._data[key]
            return None
        return entry

    def _typed(self, key: str, kind: str) -> Optional[_Entry]:
        entry = self._live(key)
        if entry is not None and entry.kind != kind:
            raise StoreProtocolError(
                "WRONGTYPE Operation against a key holding the wrong kind of value"
            )
        return entry

    def _typed_or_create(self, key: str, kind: str, empty: Callable[[], Any]) -> _Entry:
        entry = self._typed(key, kind)
        if entry is None:
            entry = _Entry(kind, empty())
            self._data[key] = entry
        return entry

    def _drop_if_empty(self, key: str, entry: _Entry) -> None:
        if not entry.value:
            del self._data[key]

    def _expire(self, key: str, ttl: Optional[int]) -> None:
        if not has_ttl(ttl):
            return
        entry = self._live(key)
        if entry is not None:
            entry.expires_at = self._clock() + ttl

    def _incrby(self, key: str, amount: int) -> int:
        entry = self._typed(key, STRING)
        try:
            current = int(entry.value) if entry is not None else 0
        except ValueError:
            raise StoreProtocolError("ERR value is not an integer or out of range") from None
        new_value = current + amount
        if entry is None:
            self._data[key] = _Entry(STRING, str(new_value).encode("ascii"))
        else:
            entry.value = str(new_value).encode("ascii")
        return new_value

    def _hincrbyfloat(self, key: str, field: str, amount: float) -> float:
        entry = self._typed_or_create(key, HASH, dict)
        try:
            current = float(entry.value.get(field, b"0"))
        except ValueError:
            self._drop_if_empty(key, entry)
            raise StoreProtocolError("ERR hash value is not a float") from None
        new_value = current + amount
        if not math.isfinite(new_value):
            self._drop_if_empty(key, entry)
            raise StoreProtocolError("ERR increment would produce NaN or Infinity")
        entry.value[field] = _format_float(new_value)
        return float(entry.value[field])

    def _list_slice_bounds(self, length: int, start: int, end: int):
        if start < 0:
            start = max(length + start, 0)
        if end < 0:
            end = length + end
        end = min(end, length - 1)
        return start, end

    def _list_position(self, items: List[bytes], index: int) -> Optional[int]:
        position = index if index >= 0 else len(items) + index
        if 0 <= position < len(items):
            return position
        return None

    # ------------------------------------------------------------------ common

    def expire(self, key: str, ttl: int) -> bool:
        with self._lock:
            self._expire(key, ttl)
        return True

    def get_ttl(self, key: str) -> int:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                return TTL_MISSING
            if entry.expires_at is None:
                return TTL_NO_EXPIRY
            return math.ceil(entry.expires_at - self._clock())

    def exists(self, key: str) -> bool:
        with self._lock:
            return self._live(key) is not None

    def delete(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self._data.pop(key, None)

    def ping(self) -> bool:
        return True

    def clear(self) -> bool:
        """Clear all cache entries"""
        with self._lock:
            self._data.clear()
        return True

    # ------------------------------------------------------------------ scalar

    def get_result(self, key: str) -> CacheResult[Any]:
        try:
            with self._lock:
                entry = self._typed(key, STRING)
                data = entry.value if entry is not None else None
            return CacheResult.success(self.serializer.loads(data))
        except STORE_ERRORS as e:
            log_failure("get", key, e)
            return CacheResult.failure(e)

    def set_if_absent(self, key: str, value: Any) -> bool:
        try:
            data = self.serializer.dumps(value)
            with self._lock:
                if self._live(key) is not None:
                    return False
                self._data[key] = _Entry(STRING, data)
                return True
        except STORE_ERRORS as e:
            log_failure("set_if_absent", key, e)
            return False

    def set_with_ttl(self, key: str, value: Any, ttl: int) -> bool:
        try:
            data = self.serializer.dumps(value)
            with self._lock:
                # a plain SET replaces the value of any type and drops the old TTL
                expires_at = self._clock() + ttl if has_ttl(ttl) else None
                self._data[key] = _Entry(STRING, data, expires_at)
            return True
        except STORE_ERRORS as e:
            log_failure("set_with_ttl", key, e)
            return False

    def increment(self, key: str, delta: int) -> int:
        check_delta(delta, "increment")
        try:
            with self._lock:
                return self._incrby(key, delta)
        except STORE_ERRORS as e:
            log_failure("increment", key, e)
            return 0

    def decrement(self, key: str, delta: int) -> int:
        check_delta(delta, "decrement")
        try:
            with self._lock:
                return self._incrby(key, -delta)
        except STORE_ERRORS as e:
            log_failure("decrement", key, e)
            return 0

    # ------------------------------------------------------------------ hash

    def hash_get(self, key: str, field: str) -> Any:
        try:
            with self._lock:
                entry = self._typed(key, HASH)
                data = entry.value.get(field) if entry is not None else None
            return self.serializer.loads(data)
        except STORE_ERRORS as e:
            log_failure("hash_get", key, e)
            return None

    def hash_get_all_result(self, key: str) -> CacheResult[Dict[str, Any]]:
        try:
            with self._lock:
                entry = self._typed(key, HASH)
                raw = dict(entry.value) if entry is not None else {}
            return CacheResult.success({
                name: self.serializer.loads(data) for name, data in raw.items()
            })
        except STORE_ERRORS as e:
            log_failure("hash_get_all", key, e)
            return CacheResult.failure(e)

    def hash_set_all(self, key: str, mapping: Mapping[str, Any], ttl: Optional[int] = None) -> bool:
        try:
            encoded = {name: self.serializer.dumps(value) for name, value in mapping.items()}
            with self._lock:
                if encoded:
                    self._typed_or_create(key, HASH, dict).value.update(encoded)
                self._expire(key, ttl)
            return True
        except STORE_ERRORS as e:
            log_failure("hash_set_all", key, e)
            return False

    def hash_set(self, key: str, field: str, value: Any, ttl: Optional[int] = None) -> bool:
        try:
            data = self.serializer.dumps(value)
            with self._lock:
                self._typed_or_create(key, HASH, dict).value[field] = data
                self._expire(key, ttl)
            return True
        except STORE_ERRORS as e:
            log_failure("hash_set", key, e)
            return False

    def hash_delete(self, key: str, *fields: str) -> int:
        try:
            with self._lock:
                entry = self._typed(key, HASH)
                if entry is None:
                    return 0
                removed = 0
                for field in fields:
                    if entry.value.pop(field, None) is not None:
                        removed += 1
                self._drop_if_empty(key, entry)
                return removed
        except STORE_ERRORS as e:
            log_failure("hash_delete", key, e)
            return 0

    def hash_exists(self, key: str, field: str) -> bool:
        try:
            with self._lock:
                entry = self._typed(key, HASH)
                return entry is not None and field in entry.value
        except STORE_ERRORS as e:
            log_failure("hash_exists", key, e)
            return False

    def hash_increment(self, key: str, field: str, delta: float) -> float:
        try:
            with self._lock:
                return self._hincrbyfloat(key, field, delta)
        except STORE_ERRORS as e:
            log_failure("hash_increment", key, e)
            return 0.0

    def hash_decrement(self, key: str, field: str, delta: float) -> float:
        try:
            with self._lock:
                return self._hincrbyfloat(key, field, -delta)
        except STORE_ERRORS as e:
            log_failure("hash_decrement", key, e)
            return 0.0

    # ------------------------------------------------------------------ set

    def set_members_result(self, key: str) -> CacheResult[Set[Any]]:
        try:
            with self._lock:
                entry = self._typed(key, SET)
                raw = set(entry.value) if entry is not None else set()
            return CacheResult.success(decode_members(self.serializer, raw))
        except STORE_ERRORS as e:
            log_failure("set_members", key, e)
            return CacheResult.failure(e)

    def set_contains(self, key: str, value: Any) -> bool:
        try:
            data = self.serializer.dumps(value)
            with self._lock:
                entry = self._typed(key, SET)
                return entry is not None and data in entry.value
        except STORE_ERRORS as e:
            log_failure("set_contains", key, e)
            return False

    def set_add(self, key: str, *values: Any, ttl: Optional[int] = None) -> int:
        if not values:
            return 0
        try:
            encoded = [self.serializer.dumps(value) for value in values]
            with self._lock:
                members = self._typed_or_create(key, SET, set).value
                before = len(members)
                members.update(encoded)
                self._expire(key, ttl)
                return len(members) - before
        except STORE_ERRORS as e:
            log_failure("set_add", key, e)
            return 0

    def set_size(self, key: str) -> int:
        try:
            with self._lock:
                entry = self._typed(key, SET)
                return len(entry.value) if entry is not None else 0
        except STORE_ERRORS as e:
            log_failure("set_size", key, e)
            return 0

    def set_remove(self, key: str, *values: Any) -> int:
        try:
            encoded = {self.serializer.dumps(value) for value in values}
            with self._lock:
                entry = self._typed(key, SET)
                if entry is None:
                    return 0
                present = encoded & entry.value
                entry.value -= present
                self._drop_if_empty(key, entry)
                return len(present)
        except STORE_ERRORS as e:
            log_failure("set_remove", key, e)
            return 0

    # ------------------------------------------------------------------ list

    def list_range_result(self, key: str, start: int = 0, end: int = -1) -> CacheResult[List[Any]]:
        try:
            with self._lock:
                entry = self._typed(key, LIST)
                items = entry.value if entry is not None else []
                first, last = self._list_slice_bounds(len(items), start, end)
                raw = items[first:last + 1] if first <= last else []
            return CacheResult.success([self.serializer.loads(data) for data in raw])
        except STORE_ERRORS as e:
            log_failure("list_range", key, e)
            return CacheResult.failure(e)

    def list_size(self, key: str) -> int:
        try:
            with self._lock:
                entry = self._typed(key, LIST)
                return len(entry.value) if entry is not None else 0
        except STORE_ERRORS as e:
            log_failure("list_size", key, e)
            return 0

    def list_index(self, key: str, index: int) -> Any:
        try:
            with self._lock:
                entry = self._typed(key, LIST)
                data = None
                if entry is not None:
                    position = self._list_position(entry.value, index)
                    if position is not None:
                        data = entry.value[position]
            return self.serializer.loads(data)
        except STORE_ERRORS as e:
            log_failure("list_index", key, e)
            return None

    def list_append(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        return self._append("list_append", key, [value], ttl)

    def list_append_all(self, key: str, values: Iterable[Any], ttl: Optional[int] = None) -> bool:
        return self._append("list_append_all", key, values, ttl)

    def _append(self, operation: str, key: str, values: Iterable[Any], ttl: Optional[int]) -> bool:
        try:
            encoded = [self.serializer.dumps(value) for value in values]
            with self._lock:
                if encoded:
                    self._typed_or_create(key, LIST, list).value.extend(encoded)
                self._expire(key, ttl)
            return True
        except STORE_ERRORS as e:
            log_failure(operation, key, e)
            return False

    def list_set_index(self, key: str, index: int, value: Any) -> bool:
        try:
            data = self.serializer.dumps(value)
            with self._lock:
                entry = self._typed(key, LIST)
                if entry is None:
                    raise StoreProtocolError("ERR no such key")
                position = self._list_position(entry.value, index)
                if position is None:
                    raise StoreProtocolError("ERR index out of range")
                entry.value[position] = data
            return True
        except STORE_ERRORS as e:
            log_failure("list_set_index", key, e)
            return False

    def list_remove(self, key: str, count: int, value: Any) -> int:
        try:
            data = self.serializer.dumps(value)
            with self._lock:
                entry = self._typed(key, LIST)
                if entry is None:
                    return 0
                items = entry.value
                limit = abs(count) if count != 0 else len(items)
                positions = range(len(items)) if count >= 0 else range(len(items) - 1, -1, -1)
                doomed = []
                for position in positions:
                    if len(doomed) == limit:
                        break
                    if items[position] == data:
                        doomed.append(position)
                for position in sorted(doomed, reverse=True):
                    del items[position]
                self._drop_if_empty(key, entry)
                return len(doomed)
        except STORE_ERRORS as e:
            log_failure("list_remove", key, e)
            return 0
