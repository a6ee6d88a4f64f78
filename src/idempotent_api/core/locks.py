"""Per-key critical sections for same-key requests inside one process.

Two concurrent requests carrying the same unseen key would otherwise both
miss the cache, both run the handler and both write an entry. Holding a
per-key lock around pre-phase, handler and post-phase makes the second
request wait and then replay the first one's entry.

The locks live in process memory. Requests handled by different processes
are not serialized; for those the store keeps the last write.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class KeyedLocks:
    """A registry of asyncio locks, one per idempotency key.

    Locks are created on first use and dropped when no task holds or waits
    for them, so the registry does not grow with the number of keys seen.

    Attributes:
        _locks: Dictionary mapping keys to asyncio.Lock objects.
        _users: Number of tasks holding or waiting for each key's lock.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Hold the lock for key for the duration of the block.

        Examples:
            >>> locks = KeyedLocks()
            >>> async with locks.hold("abc123"):
            ...     await handle(request)
        """
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1

        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
