"""Cache store protocol for the idempotency filter.

The filter persists one encoded cache entry per idempotency key in a
key-value store with absolute TTL expiry. Any backend that can get and set
bytes by key with a TTL works: Redis, Memcached, a SQL table, or the
in-memory store shipped in this package.

Examples:
    Implementing a store over an async Redis client::

        from datetime import timedelta

        class RedisCacheStore:
            def __init__(self, client) -> None:
                self.client = client

            async def get(self, key: str) -> bytes | None:
                return await self.client.get(key)

            async def set(self, key: str, value: bytes, ttl: timedelta) -> None:
                await self.client.set(key, value, ex=ttl)

Atomicity Requirements:
    Stores MUST provide atomic single-key get and set. Multi-key transactions
    are not needed. Entries past their expiry MUST be reported as absent by
    get().

Error Handling:
    Stores may raise any exception on backend failure; the coordinator wraps
    it in CacheBackendUnavailableError.
"""

from datetime import timedelta
from typing import Protocol, runtime_checkable


@runtime_checkable
class CacheStore(Protocol):
    """Protocol defining the key-value store used for cache entries."""

    async def get(self, key: str) -> bytes | None:
        """Return the bytes stored under key, or None if absent or expired."""
        ...

    async def set(self, key: str, value: bytes, ttl: timedelta) -> None:
        """Store value under key, expiring ttl after this call."""
        ...


@runtime_checkable
class PurgeableCacheStore(CacheStore, Protocol):
    """A cache store that can drop expired entries on demand.

    Backends with native expiry (Redis EXPIRE) do not need this; the
    background cleanup task only runs against stores that implement it.
    """

    async def cleanup_expired(self) -> int:
        """Remove expired entries and return how many were removed."""
        ...
