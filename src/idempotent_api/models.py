"""Core type definitions and models for the idempotency filter.

This module provides the data structures shared by the coordinator, the codec
and the replay logic: the request view the core needs from the hosting
framework, the persisted cache entry, the closed set of result descriptors,
and the per-request coordination state.

Examples:
    Creating a cache entry for a created-at-route result::

        from idempotent_api.models import CacheEntry, CreatedAtRouteDescriptor

        entry = CacheEntry(
            request_fingerprint="a" * 64,
            response_status_code=201,
            response_content_type="application/json",
            response_headers={"location": ["/orders/1"]},
            result=CreatedAtRouteDescriptor(
                route_name="GetOrder",
                route_values={"order_id": "1"},
                value={"id": 1, "item": "X", "qty": 2},
            ),
        )
"""

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field, JsonValue


class IdempotencyState(str, Enum):
    """Progress of one request through the coordinator.

    Attributes:
        NOT_STARTED: The pre-phase has not run yet.
        SKIPPED: The method is not protected; nothing else happens.
        REJECTED: The idempotency header was missing or invalid.
        PASS_THROUGH: Cache miss; the handler runs and the post-phase stores.
        CONFLICT: Cache hit for a request with different content.
        SERVED: Cache hit; the cached response replaces the handler.
        STORED: The post-phase wrote the handler's result to the store.
    """

    NOT_STARTED = "NOT_STARTED"
    SKIPPED = "SKIPPED"
    REJECTED = "REJECTED"
    PASS_THROUGH = "PASS_THROUGH"
    CONFLICT = "CONFLICT"
    SERVED = "SERVED"
    STORED = "STORED"


class RequestContext(BaseModel):
    """The parts of an HTTP request the core needs.

    Framework adapters build this once per request. The body is buffered into
    memory here, so fingerprinting never consumes a stream the handler still
    has to read.

    Attributes:
        method: HTTP method (e.g. "POST").
        path: URL path.
        headers: Raw (name, value) header pairs, duplicates preserved.
        body: Buffered request body, None when the request has no body.
        form: Form fields in original order, None unless form-encoded.
    """

    method: str
    path: str
    headers: list[tuple[str, str]] = Field(default_factory=list)
    body: bytes | None = None
    form: list[tuple[str, str]] | None = None

    model_config = {"frozen": True}


class CreatedAtRouteDescriptor(BaseModel):
    """A "created" result that points at the route serving the new resource."""

    kind: Literal["created_at_route"] = "created_at_route"
    route_name: str
    route_values: dict[str, str] = Field(default_factory=dict)
    value: JsonValue = None

    model_config = {"frozen": True}


class ObjectDescriptor(BaseModel):
    """A payload result together with the name of its concrete response type."""

    kind: Literal["object"] = "object"
    value: JsonValue = None
    declared_result_type: str = Field(..., min_length=1)

    model_config = {"frozen": True}


class StatusOnlyDescriptor(BaseModel):
    """A result with no payload; the status code carries all information."""

    kind: Literal["status_only"] = "status_only"

    model_config = {"frozen": True}


ResultDescriptor = Annotated[
    CreatedAtRouteDescriptor | ObjectDescriptor | StatusOnlyDescriptor,
    Field(discriminator="kind"),
]


class CacheEntry(BaseModel):
    """The persisted record for one idempotency key.

    Attributes:
        request_fingerprint: SHA-256 fingerprint of the original request.
        response_status_code: Status code the handler produced.
        response_content_type: Content type of the original response.
        response_headers: Original response headers, name -> values.
        result: Reconstructible description of the handler's result.
    """

    request_fingerprint: str = Field(
        ...,
        description="SHA-256 hash of the request content (64 hex characters)",
        pattern=r"^[a-f0-9]{64}$",
    )
    response_status_code: int = Field(..., ge=100, le=599)
    response_content_type: str | None = None
    response_headers: dict[str, list[str]] = Field(default_factory=dict)
    result: ResultDescriptor

    model_config = {"frozen": True}
