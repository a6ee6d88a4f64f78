"""TTL-based cleanup background task for expired cache entries.

Stores with native expiry (Redis EXPIRE) drop entries on their own. The
in-memory store only drops an expired entry when its key is read again, so
this task purges expired entries periodically to keep memory bounded.

The cleanup task:
1. Runs at configurable intervals (default 5 minutes)
2. Calls store.cleanup_expired() to remove expired entries
3. Reports metrics and logs for observability
4. Keeps running when a single cleanup run fails

Examples:
    Integrate with a FastAPI lifespan::

        from contextlib import asynccontextmanager

        @asynccontextmanager
        async def lifespan(app):
            task = await start_cleanup_task(store, interval_seconds=300)
            yield
            await stop_cleanup_task(task)
"""

import asyncio

from idempotent_api.observability.logging import get_logger
from idempotent_api.observability.metrics import record_cleanup
from idempotent_api.storage.base import PurgeableCacheStore

logger = get_logger(__name__)

STOP_TIMEOUT_SECONDS = 5.0


async def purge_expired(store: PurgeableCacheStore) -> int:
    """Run one purge and record it.

    Returns:
        Number of entries removed
    """
    removed = await store.cleanup_expired()
    record_cleanup(removed)
    if removed:
        logger.info("cleanup.completed", entries_removed=removed, remaining=_size(store))
    else:
        logger.debug("cleanup.completed", entries_removed=0)
    return removed


async def cleanup_loop(
    store: PurgeableCacheStore,
    interval_seconds: int = 300,
    stop_event: asyncio.Event | None = None,
) -> None:
    """Purge expired entries every interval_seconds until stop_event is set.

    A failed purge is logged and retried on the next tick.
    """
    stop_event = stop_event or asyncio.Event()
    logger.info("cleanup.started", interval_seconds=interval_seconds)

    while not stop_event.is_set():
        try:
            await purge_expired(store)
        except Exception as e:
            logger.error("cleanup.failed", error=str(e), error_type=type(e).__name__)

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            pass

    logger.info("cleanup.stopped")


async def start_cleanup_task(
    store: PurgeableCacheStore,
    interval_seconds: int = 300,
) -> asyncio.Task[None]:
    """Run cleanup_loop in the background.

    The returned task carries its stop event; pass it to stop_cleanup_task.
    """
    stop_event = asyncio.Event()
    task = asyncio.create_task(
        cleanup_loop(store, interval_seconds, stop_event),
        name="idempotency-cleanup",
    )
    task._stop_event = stop_event  # type: ignore[attr-defined]
    return task


async def stop_cleanup_task(task: asyncio.Task[None]) -> None:
    """Signal the cleanup task and wait for it, cancelling it on timeout."""
    stop_event: asyncio.Event | None = getattr(task, "_stop_event", None)
    if stop_event is not None:
        stop_event.set()

    try:
        await asyncio.wait_for(task, timeout=STOP_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        logger.warning("cleanup.stop_timeout", timeout_seconds=STOP_TIMEOUT_SECONDS)
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.debug("cleanup.cancelled")


def _size(store: PurgeableCacheStore) -> int | None:
    try:
        return len(store)  # type: ignore[arg-type]
    except TypeError:
        return None
