"""Cache stores for the idempotency filter.

All stores implement the CacheStore protocol defined in base.py.

Available Stores:
    - MemoryCacheStore: In-memory store with absolute TTL expiry
"""

from idempotent_api.storage.base import CacheStore, PurgeableCacheStore
from idempotent_api.storage.memory import MemoryCacheStore

__all__ = [
    "CacheStore",
    "PurgeableCacheStore",
    "MemoryCacheStore",
]
