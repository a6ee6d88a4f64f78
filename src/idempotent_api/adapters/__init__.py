"""Framework adapters for the idempotency filter.

- fastapi_route.py: route-level integration for FastAPI

Adapters convert framework requests into RequestContext and drive the
coordinator around the endpoint.
"""

from idempotent_api.adapters.fastapi_route import (
    IdempotentRoute,
    build_request_context,
    install_idempotency,
)

__all__ = ["IdempotentRoute", "build_request_context", "install_idempotency"]
