"""In-memory cache store with absolute TTL expiry.

This module provides a dictionary-backed implementation of the CacheStore
protocol. It is suitable for:
    - Single-process applications
    - Development and testing

Expiry:
    - Each entry records its absolute expiry time when it is written
    - get() reports entries at or past their expiry as absent and drops them
    - cleanup_expired() purges expired entries in bulk
    - The clock is injectable so tests can move time forward

Examples:
    Basic usage::

        from datetime import timedelta
        from idempotent_api.storage.memory import MemoryCacheStore

        store = MemoryCacheStore()
        await store.set("abc123", b"...", ttl=timedelta(hours=24))
        data = await store.get("abc123")

    Controlling time in tests::

        now = datetime(2024, 1, 1, tzinfo=UTC)
        store = MemoryCacheStore(clock=lambda: now)
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from idempotent_api.storage.base import PurgeableCacheStore


def _utcnow() -> datetime:
    return datetime.now(UTC)


class MemoryCacheStore(PurgeableCacheStore):
    """In-memory cache store.

    Attributes:
        _entries: Dictionary mapping keys to (value, expires_at) pairs.
        _clock: Callable returning the current aware datetime.
        _lock: Lock serializing bulk cleanup against itself.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        """Initialize an empty store.

        Args:
            clock: Returns the current time; defaults to datetime.now(UTC).
        """
        self._entries: dict[str, tuple[bytes, datetime]] = {}
        self._clock = clock or _utcnow
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> bytes | None:
        """Retrieve the bytes stored under key.

        Args:
            key: The idempotency key to look up.

        Returns:
            The stored bytes, or None if absent or expired.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: bytes, ttl: timedelta) -> None:
        """Store bytes under key with an absolute expiry of now + ttl.

        Args:
            key: The idempotency key.
            value: Encoded cache entry.
            ttl: Lifetime of the entry.

        Raises:
            ValueError: If ttl is not positive.
        """
        if ttl <= timedelta(0):
            raise ValueError(f"ttl must be positive, got {ttl}")
        self._entries[key] = (bytes(value), self._clock() + ttl)

    def expires_at(self, key: str) -> datetime | None:
        """Return the absolute expiry of a stored key, expired or not."""
        entry = self._entries.get(key)
        return entry[1] if entry is not None else None

    async def cleanup_expired(self) -> int:
        """Remove expired entries from the store.

        Returns:
            The number of entries removed.
        """
        async with self._lock:
            now = self._clock()
            expired_keys = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
            for key in expired_keys:
                del self._entries[key]
            return len(expired_keys)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
