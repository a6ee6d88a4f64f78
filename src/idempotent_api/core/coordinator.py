"""Two-phase idempotency coordination.

The hosting framework creates one Idempotency instance per request, calls
apply_pre() before the handler and apply_post() after it:

    NOT_STARTED -> SKIPPED        method is not protected
    NOT_STARTED -> REJECTED       idempotency header missing or invalid (400)
    NOT_STARTED -> PASS_THROUGH   cache miss, the handler runs
    NOT_STARTED -> CONFLICT       cache hit for different content (400)
    NOT_STARTED -> SERVED         cache hit, the cached response replaces the handler
    PASS_THROUGH -> STORED        the post-phase wrote the handler's result

Only PASS_THROUGH lets the handler run with its result cached afterwards;
SERVED guarantees the handler does not run at all.

Examples:
    Driving the phases by hand::

        coordinator = Idempotency(store, config)
        pre = await coordinator.apply_pre(request)
        if pre.response is not None:
            return pre.response
        response = await handler(request)
        await coordinator.apply_post(request, response)
        return response

    Or in one call::

        response = await process_request(store, config, request, lambda: handler(request))
"""

from collections.abc import Awaitable, Callable
from contextlib import nullcontext

from starlette.responses import Response

from idempotent_api.codec import decode_entry, encode_entry
from idempotent_api.config import IdempotencyConfig
from idempotent_api.core.capture import capture_entry
from idempotent_api.core.locks import KeyedLocks
from idempotent_api.core.replay import reconstruct_response
from idempotent_api.exceptions import (
    CacheBackendUnavailableError,
    ClientRequestError,
    CorruptCacheEntryError,
    FingerprintMismatchError,
    IdempotencyError,
)
from idempotent_api.fingerprint import fingerprint_request
from idempotent_api.keys import extract_idempotency_key
from idempotent_api.models import CacheEntry, IdempotencyState, RequestContext
from idempotent_api.observability.logging import get_logger
from idempotent_api.observability.metrics import (
    record_corrupt_entry,
    record_entry_stored,
    record_outcome,
)
from idempotent_api.results import BadRequestObjectResponse
from idempotent_api.storage.base import CacheStore
from idempotent_api.utils.headers import add_replay_headers

logger = get_logger(__name__)


class PreResult:
    """Outcome of the pre-phase.

    Attributes:
        state: The state the request reached
        response: Response to send instead of running the handler, if any
        error: The client error behind a REJECTED or CONFLICT state
    """

    def __init__(
        self,
        state: IdempotencyState,
        response: Response | None = None,
        error: IdempotencyError | None = None,
    ) -> None:
        self.state = state
        self.response = response
        self.error = error

    @property
    def short_circuited(self) -> bool:
        """True if the handler must not run."""
        return self.response is not None


class Idempotency:
    """Request-scoped idempotency coordinator.

    Holds only per-request state: the extracted key and the current state.
    Nothing is shared between requests except through the store.

    Attributes:
        store: Cache store for encoded entries (None means misconfigured)
        config: Configuration object
        state: Current coordination state
        key: The idempotency key, once extracted
    """

    def __init__(self, store: CacheStore | None, config: IdempotencyConfig) -> None:
        self.store = store
        self.config = config
        self.state = IdempotencyState.NOT_STARTED
        self.key: str | None = None
        self._pre_result: PreResult | None = None

    async def apply_pre(self, request: RequestContext) -> PreResult:
        """Run the pre-phase: validate the key and serve a cached response.

        Calling it again for the same request returns the first result.

        Args:
            request: The buffered request

        Returns:
            PreResult; when its response is set the handler must not run

        Raises:
            CacheBackendUnavailableError: No store is configured for a
                protected request, or reading from it failed
        """
        if self._pre_result is not None:
            return self._pre_result

        logger.debug(
            "idempotency.pre.received",
            method=request.method,
            path=request.path,
            body_bytes=len(request.body) if request.body is not None else 0,
        )
        if not self.config.applies_to(request.method):
            return self._finish_pre(IdempotencyState.SKIPPED)

        store = self._require_store()
        try:
            self.key = extract_idempotency_key(request.headers, self.config.header_name)
        except ClientRequestError as e:
            logger.info(
                "idempotency.pre.rejected",
                path=request.path,
                error=e.code,
            )
            return self._finish_pre(IdempotencyState.REJECTED, _error_response(e), e)

        entry = await self._lookup(store, self.key)
        if entry is None:
            logger.debug("idempotency.pre.miss", key=self.key, path=request.path)
            return self._finish_pre(IdempotencyState.PASS_THROUGH)

        fingerprint = fingerprint_request(request)
        if fingerprint != entry.request_fingerprint:
            conflict = FingerprintMismatchError(
                key=self.key,
                stored_fingerprint=entry.request_fingerprint,
                request_fingerprint=fingerprint,
            )
            logger.warning(
                "idempotency.pre.conflict",
                key=self.key,
                path=request.path,
            )
            return self._finish_pre(IdempotencyState.CONFLICT, _error_response(conflict), conflict)

        response = reconstruct_response(entry)
        if self.config.replay_header:
            add_replay_headers(response.headers)
        logger.info(
            "idempotency.pre.served",
            key=self.key,
            path=request.path,
            status_code=response.status_code,
        )
        return self._finish_pre(IdempotencyState.SERVED, response)

    async def apply_post(self, request: RequestContext, response: Response) -> None:
        """Run the post-phase: cache the handler's response under the key.

        Does nothing unless the pre-phase ended in PASS_THROUGH.

        Args:
            request: The buffered request
            response: The response produced by the handler

        Raises:
            UnsupportedResultTypeError: The response cannot be cached; nothing
                is written
            CacheBackendUnavailableError: Writing to the store failed
        """
        if self.state is not IdempotencyState.PASS_THROUGH or self.key is None:
            return

        entry = capture_entry(response, fingerprint_request(request))
        data = encode_entry(entry)

        store = self._require_store()
        try:
            await store.set(self.key, data, self.config.ttl)
        except IdempotencyError:
            raise
        except Exception as e:
            raise CacheBackendUnavailableError(
                message=f"Failed to write idempotency key '{self.key}' to the cache: {e}",
                cause=e,
            ) from e

        self.state = IdempotencyState.STORED
        record_entry_stored()
        logger.info(
            "idempotency.post.stored",
            key=self.key,
            path=request.path,
            status_code=response.status_code,
            result=entry.result.kind,
        )

    def lock_key(self, request: RequestContext) -> str | None:
        """Return the key to serialize this request on, if it has a valid one."""
        if not self.config.applies_to(request.method):
            return None
        try:
            return extract_idempotency_key(request.headers, self.config.header_name)
        except ClientRequestError:
            return None

    def _require_store(self) -> CacheStore:
        if self.store is None:
            raise CacheBackendUnavailableError("An idempotency cache store is not configured.")
        return self.store

    async def _lookup(self, store: CacheStore, key: str) -> CacheEntry | None:
        try:
            data = await store.get(key)
        except IdempotencyError:
            raise
        except Exception as e:
            raise CacheBackendUnavailableError(
                message=f"Failed to read idempotency key '{key}' from the cache: {e}",
                cause=e,
            ) from e

        if data is None:
            return None

        try:
            return decode_entry(data)
        except CorruptCacheEntryError as e:
            record_corrupt_entry()
            logger.warning("idempotency.cache.corrupt", key=key, error=e.message)
            return None

    def _finish_pre(
        self,
        state: IdempotencyState,
        response: Response | None = None,
        error: IdempotencyError | None = None,
    ) -> PreResult:
        self.state = state
        self._pre_result = PreResult(state, response, error)
        record_outcome(state.value.lower())
        return self._pre_result


def _error_response(error: IdempotencyError) -> Response:
    return BadRequestObjectResponse(error.to_body(), status_code=error.status_code)


async def process_request(
    store: CacheStore | None,
    config: IdempotencyConfig,
    request: RequestContext,
    handler: Callable[[], Awaitable[Response]],
    locks: KeyedLocks | None = None,
) -> Response:
    """Run pre-phase, handler and post-phase for one request.

    When locks are given, requests carrying the same key are serialized from
    the pre-phase through the post-phase, so a concurrent duplicate replays
    the first request's entry instead of running the handler again.

    Args:
        store: Cache store for encoded entries
        config: Configuration object
        request: The buffered request
        handler: Runs the endpoint and returns its response
        locks: Optional per-key lock registry shared across requests

    Returns:
        The handler's response, a replayed response, or a 400 rejection

    Raises:
        UnsupportedResultTypeError: The handler's response cannot be cached
        CacheBackendUnavailableError: The store is missing or failing
    """
    coordinator = Idempotency(store, config)
    key = coordinator.lock_key(request) if locks is not None else None

    async with locks.hold(key) if locks is not None and key is not None else nullcontext():
        pre = await coordinator.apply_pre(request)
        if pre.response is not None:
            return pre.response

        response = await handler()
        await coordinator.apply_post(request, response)
        return response
