"""TTL key/value cache used for adapter context."""

from .cache import DEFAULT_TTL, CacheBackend, CacheEntry, MemoryCache

__all__ = ["DEFAULT_TTL", "CacheBackend", "CacheEntry", "MemoryCache"]
