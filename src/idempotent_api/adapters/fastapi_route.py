"""FastAPI integration for the idempotency filter.

A plain ASGI middleware only sees the rendered bytes of a response. The
filter needs the response object the endpoint returned, so it hooks in at the
route level with a custom APIRoute class instead.

The route:
1. Buffers the request body (and form fields) into a RequestContext
2. Runs the coordinator's pre-phase and short-circuits on replay or rejection
3. Runs the endpoint, then the post-phase to cache its response
4. Renders server-side idempotency faults as HTTP 500

Examples:
    FastAPI integration::

        from fastapi import FastAPI
        from idempotent_api.adapters import install_idempotency
        from idempotent_api.results import CreatedAtRouteResponse
        from idempotent_api.storage.memory import MemoryCacheStore

        app = FastAPI()
        install_idempotency(app, MemoryCacheStore())  # before declaring routes

        @app.post("/orders")
        async def create_order(order: OrderIn) -> CreatedAtRouteResponse:
            saved = repository.add(order)
            return CreatedAtRouteResponse("GetOrder", {"order_id": saved.id}, saved)

    Router integration::

        router = APIRouter(route_class=IdempotentRoute)
"""

import hashlib
from collections.abc import Callable, Coroutine
from typing import Any

from fastapi import FastAPI
from fastapi.routing import APIRoute
from starlette.datastructures import UploadFile
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from idempotent_api.config import IdempotencyConfig
from idempotent_api.core.coordinator import process_request
from idempotent_api.core.locks import KeyedLocks
from idempotent_api.exceptions import IdempotencyError
from idempotent_api.models import RequestContext
from idempotent_api.observability.logging import get_logger, request_log_context
from idempotent_api.results import CreatedAtRouteResponse
from idempotent_api.storage.base import CacheStore

logger = get_logger(__name__)

MULTIPART_CONTENT_TYPE = "multipart/form-data"
FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", MULTIPART_CONTENT_TYPE)

_DEFAULT_CONFIG = IdempotencyConfig()


def install_idempotency(
    app: FastAPI,
    store: CacheStore,
    config: IdempotencyConfig | None = None,
) -> None:
    """Attach a store and configuration to an app and protect its routes.

    Routes declared on ``app`` after this call use IdempotentRoute. Routers
    included later need ``route_class=IdempotentRoute`` themselves.

    Args:
        app: The FastAPI application
        store: Cache store shared by all requests
        config: Configuration object (uses defaults if not provided)
    """
    config = config or _DEFAULT_CONFIG
    app.state.idempotency_store = store
    app.state.idempotency_config = config
    app.state.idempotency_locks = KeyedLocks() if config.lock_same_key else None
    app.router.route_class = IdempotentRoute


async def build_request_context(request: Request, config: IdempotencyConfig) -> RequestContext:
    """Buffer the parts of a Starlette request the coordinator needs.

    The body is only read for protected methods. Starlette caches what it
    reads, so the endpoint can still read the body and form afterwards.
    """
    headers = list(request.headers.items())
    if not config.applies_to(request.method):
        return RequestContext(method=request.method, path=request.url.path, headers=headers)

    body = await request.body()

    form: list[tuple[str, str]] | None = None
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        form_data = await request.form()
        form = [(name, await _form_field_value(value)) for name, value in form_data.multi_items()]

    # The multipart boundary is random per request; the parsed fields stand in for the body
    if content_type.startswith(MULTIPART_CONTENT_TYPE):
        body = b""

    return RequestContext(
        method=request.method,
        path=request.url.path,
        headers=headers,
        body=body or None,
        form=form,
    )


async def _form_field_value(value: str | UploadFile) -> str:
    """Return a form value, or ``filename:sha256`` for an uploaded file."""
    if isinstance(value, str):
        return value
    content = await value.read()
    await value.seek(0)
    return f"{value.filename or ''}:{hashlib.sha256(content).hexdigest()}"


class IdempotentRoute(APIRoute):
    """APIRoute that wraps its endpoint in the idempotency filter.

    Reads ``idempotency_store``, ``idempotency_config`` and
    ``idempotency_locks`` from ``request.app.state`` (see install_idempotency).
    """

    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        original_route_handler = super().get_route_handler()

        async def idempotent_route_handler(request: Request) -> Response:
            app_state = request.app.state
            store: CacheStore | None = getattr(app_state, "idempotency_store", None)
            config: IdempotencyConfig = getattr(app_state, "idempotency_config", None) or _DEFAULT_CONFIG
            locks: KeyedLocks | None = getattr(app_state, "idempotency_locks", None)

            context = await build_request_context(request, config)

            async def call_endpoint() -> Response:
                response = await original_route_handler(request)
                if isinstance(response, CreatedAtRouteResponse):
                    response.resolve_location(request)
                return response

            with request_log_context(request.method, request.url.path):
                try:
                    response = await process_request(store, config, context, call_endpoint, locks)
                except IdempotencyError as e:
                    logger.error("idempotency.failed", error=e.code, message=e.message)
                    return JSONResponse(e.to_body(), status_code=e.status_code)

            if isinstance(response, CreatedAtRouteResponse):
                response.resolve_location(request)
            return response

        return idempotent_route_handler
