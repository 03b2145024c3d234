"""
Serializers sitting between cache callers and the store.

Redis only stores bytes. A serializer decides how caller values become
bytes on the way in and what they become on the way out.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional
import json

from tinyurl_cache.exceptions import SerializationError


class Serializer(ABC):
    """Strategy interface for value encoding."""

    @abstractmethod
    def dumps(self, value: Any) -> bytes:
        """
        Encode a value for the store.

        Raises:
            SerializationError: if the value has no encoding
        """
        pass

    @abstractmethod
    def loads(self, data: Optional[bytes]) -> Any:
        """
        Decode bytes read from the store. ``None`` (missing) stays ``None``.

        Raises:
            SerializationError: if the bytes cannot be decoded
        """
        pass


class JsonSerializer(Serializer):
    """
    JSON encoding for the closed set of JSON types.

    Output is compact with sorted keys, so equal values always encode to
    equal bytes. Set membership and list removal compare encoded bytes.
    """

    def dumps(self, value: Any) -> bytes:
        try:
            return json.dumps(value, separators=(",", ":"), sort_keys=True).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Cannot encode {type(value).__name__} as JSON: {e}") from e

    def loads(self, data: Optional[bytes]) -> Any:
        if data is None:
            return None
        try:
            return json.loads(data)
        except ValueError as e:
            raise SerializationError(f"Stored value is not valid JSON: {e}") from e


class RawSerializer(Serializer):
    """
    Pass-through encoding.

    bytes are stored as is, str as UTF-8, numbers as their decimal text.
    Reads always return bytes.
    """

    def dumps(self, value: Any) -> bytes:
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value)
        if isinstance(value, str):
            return value.encode("utf-8")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value).encode("ascii")
        raise SerializationError(f"Raw serializer cannot encode {type(value).__name__}")

    def loads(self, data: Optional[bytes]) -> Any:
        return data


class SerializerType(Enum):
    """Available serializers"""
    JSON = "json"
    RAW = "raw"


def get_serializer(serializer_type: SerializerType) -> Serializer:
    """Build a serializer from its configured name."""
    if serializer_type == SerializerType.JSON:
        return JsonSerializer()
    if serializer_type == SerializerType.RAW:
        return RawSerializer()
    raise ValueError(f"Unknown serializer: {serializer_type}")
