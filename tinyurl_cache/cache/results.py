"""
Result type for reads where "empty" and "failed" must be told apart.
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class CacheResult(Generic[T]):
    """
    Outcome of one store round trip.

    ok=True with an empty value means the entry is genuinely empty or
    absent; ok=False means the call failed and ``error`` says why.
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Optional[T]) -> "CacheResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: Exception) -> "CacheResult[T]":
        return cls(ok=False, error=f"{type(error).__name__}: {error}")

    def value_or(self, fallback: T) -> T:
        """Return the payload, or ``fallback`` if the call failed."""
        if not self.ok:
            return fallback
        return self.value
