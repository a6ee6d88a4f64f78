"""Custom exceptions for the idempotency filter.

This module defines the exception hierarchy used throughout the package.
Errors fall into two groups:

1. Client request faults (``ClientRequestError`` and its subclasses). The
   caller can fix these; the coordinator turns them into HTTP 400 responses
   before the handler runs.
2. Server faults (corrupt cache entries, unsupported handler results, an
   unreachable cache backend). These propagate out of the coordinator, except
   ``CorruptCacheEntryError`` which the pre-phase treats as a cache miss.

Examples:
    Handling a key reuse conflict::

        from idempotent_api.exceptions import FingerprintMismatchError

        try:
            ...
        except FingerprintMismatchError as e:
            logger.warning("idempotency.conflict", key=e.key)
            return BadRequestObjectResponse(e.to_body())

    Handling a backend failure::

        from idempotent_api.exceptions import CacheBackendUnavailableError

        try:
            await coordinator.apply_pre(request)
        except CacheBackendUnavailableError as e:
            logger.error("idempotency.backend.unavailable", error=str(e))
            raise
"""


class IdempotencyError(Exception):
    """Base exception for all idempotency-related errors.

    Attributes:
        message: Human-readable error description.
        code: Machine-parsable error code used in response bodies.
        status_code: HTTP status used when the error is rendered.
    """

    code = "idempotency_error"
    status_code = 500

    def __init__(self, message: str) -> None:
        """Initialize the exception with a message.

        Args:
            message: Human-readable error description.
        """
        self.message = message
        super().__init__(message)

    def to_body(self) -> dict[str, str]:
        """Return the JSON body used when this error is sent to a client.

        Examples:
            >>> IdempotencyError("boom").to_body()
            {'error': 'idempotency_error', 'message': 'boom'}
        """
        return {"error": self.code, "message": self.message}


class ClientRequestError(IdempotencyError):
    """A fault the client can correct; always rendered as HTTP 400."""

    code = "bad_request"
    status_code = 400


class MissingHeaderError(ClientRequestError):
    """The idempotency header was not sent.

    Attributes:
        header_name: The configured idempotency header name.
    """

    code = "missing_header"

    def __init__(self, header_name: str) -> None:
        super().__init__(f"The Idempotency header key '{header_name}' is not found")
        self.header_name = header_name


class EmptyHeaderValueError(ClientRequestError):
    """The idempotency header was sent without a value."""

    code = "empty_header_value"

    def __init__(self, header_name: str) -> None:
        super().__init__("An Idempotency header value is not found")
        self.header_name = header_name


class MultipleHeaderValuesError(ClientRequestError):
    """The idempotency header was sent more than once.

    Attributes:
        header_name: The configured idempotency header name.
        count: How many non-empty values were supplied.
    """

    code = "multiple_header_values"

    def __init__(self, header_name: str, count: int) -> None:
        super().__init__("Multiple Idempotency keys were found")
        self.header_name = header_name
        self.count = count


class FingerprintMismatchError(ClientRequestError):
    """Key reuse detected - same key, different request content.

    Raised (and rendered as 400) when a request carries an idempotency key
    that already has a cache entry, but the fingerprint of the incoming
    request differs from the fingerprint stored with the entry. The stored
    entry is left untouched.

    Attributes:
        key: The idempotency key that was reused.
        stored_fingerprint: Fingerprint stored in the cache entry.
        request_fingerprint: Fingerprint of the incoming request.

    Examples:
        >>> error = FingerprintMismatchError("abc123", "a" * 64, "b" * 64)
        >>> error.message
        "The Idempotency header key value 'abc123' was used in a different request."
    """

    code = "fingerprint_mismatch"

    def __init__(
        self,
        key: str,
        stored_fingerprint: str,
        request_fingerprint: str,
    ) -> None:
        """Initialize the mismatch error with details.

        Args:
            key: The idempotency key that was reused.
            stored_fingerprint: Fingerprint stored in the cache entry.
            request_fingerprint: Fingerprint of the incoming request.
        """
        super().__init__(f"The Idempotency header key value '{key}' was used in a different request.")
        self.key = key
        self.stored_fingerprint = stored_fingerprint
        self.request_fingerprint = request_fingerprint


class CorruptCacheEntryError(IdempotencyError):
    """Cached bytes could not be decoded into a cache entry.

    The pre-phase treats this as a cache miss, so a fresh entry overwrites
    the corrupt one in the post-phase.

    Attributes:
        cause: The underlying decoding or validation error.
    """

    code = "corrupt_cache_entry"

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class UnsupportedResultTypeError(IdempotencyError):
    """The handler produced a response the cache entry cannot represent.

    Raised during capture, before anything is written to the store.

    Attributes:
        result_type: Name of the offending response class.
    """

    code = "unsupported_result_type"

    def __init__(self, result_type: str) -> None:
        super().__init__(f"Caching is not implemented for result type {result_type}")
        self.result_type = result_type


class CacheBackendUnavailableError(IdempotencyError):
    """The cache store is not configured or a store operation failed.

    The coordinator never lets a handler run unprotected because of a
    backend failure; this error is raised instead.

    Attributes:
        message: Human-readable error description.
        cause: The underlying exception, if any.

    Examples:
        Wrapping a backend error::

            try:
                data = await client.get(key)
            except ConnectionError as e:
                raise CacheBackendUnavailableError(
                    message=f"Failed to read key from cache: {e}",
                    cause=e,
                ) from e
    """

    code = "cache_backend_unavailable"

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        """Initialize the backend error with details.

        Args:
            message: Human-readable error description.
            cause: The underlying exception that caused the failure.
        """
        super().__init__(message)
        self.cause = cause
