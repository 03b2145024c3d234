"""
Tests for value serializers and the result type.
"""

import pytest

from tinyurl_cache.cache import CacheResult, JsonSerializer, RawSerializer, SerializerType
from tinyurl_cache.cache.serializers import get_serializer
from tinyurl_cache.exceptions import SerializationError


class TestJsonSerializer:
    """Test JSON encoding"""

    def test_equal_values_encode_equally(self):
        """Test that key order does not change the encoding"""
        serializer = JsonSerializer()

        assert serializer.dumps({"b": 1, "a": [1, 2]}) == b'{"a":[1,2],"b":1}'
        assert serializer.dumps({"a": [1, 2], "b": 1}) == serializer.dumps({"b": 1, "a": [1, 2]})

    def test_integers_encode_as_decimal_text(self):
        """Test that counters written as ints stay incrementable by the store"""
        assert JsonSerializer().dumps(42) == b"42"

    def test_missing_stays_missing(self):
        assert JsonSerializer().loads(None) is None

    def test_json_null_is_stored(self):
        serializer = JsonSerializer()
        assert serializer.loads(serializer.dumps(None)) is None
        assert serializer.dumps(None) == b"null"

    def test_unencodable(self):
        with pytest.raises(SerializationError):
            JsonSerializer().dumps(object())

    def test_undecodable(self):
        with pytest.raises(SerializationError):
            JsonSerializer().loads(b"{not json")


class TestRawSerializer:
    """Test pass-through encoding"""

    def test_dumps(self):
        serializer = RawSerializer()

        assert serializer.dumps(b"\x00abc") == b"\x00abc"
        assert serializer.dumps(bytearray(b"ab")) == b"ab"
        assert serializer.dumps("héllo") == "héllo".encode("utf-8")
        assert serializer.dumps(7) == b"7"
        assert serializer.dumps(1.5) == b"1.5"

    def test_rejects_other_types(self):
        serializer = RawSerializer()

        with pytest.raises(SerializationError):
            serializer.dumps(True)
        with pytest.raises(SerializationError):
            serializer.dumps({"a": 1})

    def test_loads_returns_bytes(self):
        assert RawSerializer().loads(b"abc") == b"abc"
        assert RawSerializer().loads(None) is None


class TestGetSerializer:
    def test_by_type(self):
        assert isinstance(get_serializer(SerializerType.JSON), JsonSerializer)
        assert isinstance(get_serializer(SerializerType("raw")), RawSerializer)

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            SerializerType("pickle")


class TestCacheResult:
    """Test the success/failure result"""

    def test_success(self):
        result = CacheResult.success([1, 2])

        assert result.ok is True
        assert result.error is None
        assert result.value_or([]) == [1, 2]

    def test_empty_success_is_not_fallback(self):
        """Test that a genuinely empty value is returned as is"""
        empty = set()
        assert CacheResult.success(empty).value_or({"fallback"}) is empty

    def test_failure(self):
        result = CacheResult.failure(TimeoutError("read timed out"))

        assert result.ok is False
        assert result.value is None
        assert result.error == "TimeoutError: read timed out"
        assert result.value_or([]) == []
