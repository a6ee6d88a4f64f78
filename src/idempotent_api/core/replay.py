"""Response replay logic for the idempotency filter.

This module rebuilds a response object from a stored cache entry. The replay
process:
1. Dispatches on the result descriptor kind
2. Rebuilds the concrete response class with the captured status code
3. Restores captured headers the rebuilt response lacks (volatile headers
   such as Date, Server and Content-Length are skipped)

The rebuilt response renders the same status code and payload as the original.

Examples:
    Basic replay::

        from idempotent_api.core.replay import reconstruct_response

        response = reconstruct_response(entry)
        # response.status_code == entry.response_status_code
"""

from starlette.responses import Response

from idempotent_api.models import (
    CacheEntry,
    CreatedAtRouteDescriptor,
    ObjectDescriptor,
    StatusOnlyDescriptor,
)
from idempotent_api.results import (
    OBJECT_RESPONSE_TYPES,
    CreatedAtRouteResponse,
    ObjectResponse,
    StatusCodeResponse,
)
from idempotent_api.utils.headers import restore_headers


def reconstruct_response(entry: CacheEntry) -> Response:
    """Rebuild the response described by a cache entry.

    Object results are rebuilt as the registered response class named in the
    entry. An unknown class name falls back to a generic ObjectResponse; both
    carry the captured status code.

    Args:
        entry: The decoded cache entry

    Returns:
        A response equivalent to the one originally produced

    Examples:
        >>> from idempotent_api.models import StatusOnlyDescriptor
        >>> entry = CacheEntry(
        ...     request_fingerprint="a" * 64,
        ...     response_status_code=204,
        ...     result=StatusOnlyDescriptor(),
        ... )
        >>> reconstruct_response(entry).status_code
        204
    """
    result = entry.result
    status_code = entry.response_status_code

    response: Response
    if isinstance(result, CreatedAtRouteDescriptor):
        response = CreatedAtRouteResponse(
            route_name=result.route_name,
            route_values=result.route_values,
            value=result.value,
            status_code=status_code,
        )
    elif isinstance(result, ObjectDescriptor):
        response_class = OBJECT_RESPONSE_TYPES.get(result.declared_result_type, ObjectResponse)
        response = response_class(result.value, status_code=status_code)
    elif isinstance(result, StatusOnlyDescriptor):
        response = StatusCodeResponse(status_code=status_code)
    else:
        # Should never reach here: the codec only produces the kinds above
        raise RuntimeError(f"Unexpected result descriptor: {type(result).__name__}")

    restore_headers(response.headers, entry.response_headers)
    return response
