"""
Idempotency keys for HTTP APIs.

This package makes non-idempotent requests (POST, PATCH) safe to retry: the
first execution for an idempotency key is cached and later requests with the
same key and content get the cached response instead of running the handler
again.
"""

from idempotent_api.config import IdempotencyConfig
from idempotent_api.core.coordinator import Idempotency, process_request
from idempotent_api.storage.base import CacheStore
from idempotent_api.storage.memory import MemoryCacheStore

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CacheStore",
    "Idempotency",
    "IdempotencyConfig",
    "MemoryCacheStore",
    "process_request",
]
