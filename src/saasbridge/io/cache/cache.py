"""Key/value caching with TTL support.

Entries expire a fixed interval after their last write; reads never extend
an entry's life. Values are stored as-is (no serialization) because the
cache lives in the adapter's process.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Protocol, TypeVar, runtime_checkable

DEFAULT_TTL: float = 300.0  # 5 minutes
T = TypeVar("T")


@dataclass(slots=True)
class CacheEntry(Generic[T]):
    """A cached value with its creation timestamp."""
    value: T
    created_at: float
    ttl: float | None

    def expired(self, now: float) -> bool:
        return self.ttl is not None and now - self.created_at >= self.ttl


@runtime_checkable
class CacheBackend(Protocol):
    """Protocol for cache backends (enables custom implementations)."""

    def get(self, key: str) -> Any | None: ...
    def set(self, key: str, value: Any, ttl: float | None = ...) -> None: ...
    def delete(self, key: str) -> bool: ...
    def clear(self) -> None: ...


_NO_TTL = object()


class MemoryCache:
    """In-memory cache with TTL-based expiration.

    The lock only keeps the dict consistent; it does not serialize
    get-miss-fetch-set sequences, so concurrent cold readers may each fetch
    and the last write wins.

    Args:
        default_ttl: Lifetime in seconds for entries written without an explicit ttl
        enabled: When False every get misses and set is a no-op
        clock: Time source, injectable for tests

    Example:
        >>> cache = MemoryCache(default_ttl=60)
        >>> cache.set("bugsnag_org", {"id": "o1"})
        >>> cache.get("bugsnag_org")
        {'id': 'o1'}
    """

    __slots__ = ("_entries", "_default_ttl", "_enabled", "_clock", "_lock")

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        *,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._default_ttl = default_ttl
        self._enabled = enabled
        self._clock = clock
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def get(self, key: str) -> Any | None:
        if not self._enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expired(self._clock()):
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl: float | None | object = _NO_TTL) -> None:
        """Store value. ttl=None stores without expiry; omitted uses the default TTL."""
        if not self._enabled:
            return
        effective = self._default_ttl if ttl is _NO_TTL else ttl
        with self._lock:
            self._entries[key] = CacheEntry(value=value, created_at=self._clock(), ttl=effective)  # type: ignore[arg-type]

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict[str, object]:
        """Cache statistics for diagnostics."""
        now = self._clock()
        with self._lock:
            expired = sum(1 for e in self._entries.values() if e.expired(now))
            return {
                "enabled": self._enabled,
                "total_entries": len(self._entries),
                "expired_entries": expired,
                "active_entries": len(self._entries) - expired,
                "default_ttl": self._default_ttl,
            }
