"""Turn a handler's response into a cache entry.

The match over response classes is closed: created-at-route, object payload,
status-only. Anything else raises UnsupportedResultTypeError before a cache
entry exists, so an unreconstructible response is never stored.
"""

from starlette.responses import Response

from idempotent_api.exceptions import UnsupportedResultTypeError
from idempotent_api.models import (
    CacheEntry,
    CreatedAtRouteDescriptor,
    ObjectDescriptor,
    ResultDescriptor,
    StatusOnlyDescriptor,
)
from idempotent_api.results import CreatedAtRouteResponse, ObjectResponse, StatusCodeResponse
from idempotent_api.utils.headers import group_headers


def describe_result(response: Response) -> ResultDescriptor:
    """Build the descriptor for a handler response.

    Args:
        response: The response produced by the handler

    Returns:
        The matching result descriptor

    Raises:
        UnsupportedResultTypeError: The response is not one of the result
            types in idempotent_api.results
    """
    # CreatedAtRouteResponse is an ObjectResponse; check it first
    if isinstance(response, CreatedAtRouteResponse):
        return CreatedAtRouteDescriptor(
            route_name=response.route_name,
            route_values=dict(response.route_values),
            value=response.value,
        )
    if isinstance(response, ObjectResponse):
        return ObjectDescriptor(
            value=response.value,
            declared_result_type=type(response).__name__,
        )
    if isinstance(response, StatusCodeResponse):
        return StatusOnlyDescriptor()

    raise UnsupportedResultTypeError(type(response).__name__)


def capture_entry(response: Response, fingerprint: str) -> CacheEntry:
    """Build the cache entry for a handler response.

    Args:
        response: The response produced by the handler
        fingerprint: Fingerprint of the request that produced it

    Raises:
        UnsupportedResultTypeError: See describe_result
    """
    result = describe_result(response)
    return CacheEntry(
        request_fingerprint=fingerprint,
        response_status_code=response.status_code,
        response_content_type=response.headers.get("content-type"),
        response_headers=group_headers(response.headers.items()),
        result=result,
    )
