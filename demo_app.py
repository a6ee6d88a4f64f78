"""Demo FastAPI application with idempotency keys.

This application demonstrates the idempotency filter in action.
Run with: python demo_app.py
Then try:

    curl -i -X POST http://localhost:8000/orders \\
        -H 'IdempotencyKey: abc123' -H 'Content-Type: application/json' \\
        -d '{"item":"X","qty":2}'

Repeat the command to get the cached 201 back with ``Idempotent-Replay: true``.
Change the body and the same key is rejected with 400.
"""

from contextlib import asynccontextmanager
from datetime import UTC, datetime

import uvicorn
from fastapi import FastAPI
from prometheus_client import make_asgi_app
from pydantic import BaseModel

from idempotent_api.adapters import install_idempotency
from idempotent_api.config import IdempotencyConfig
from idempotent_api.core.cleanup import start_cleanup_task, stop_cleanup_task
from idempotent_api.observability.logging import configure_logging
from idempotent_api.results import (
    CreatedAtRouteResponse,
    NoContentResponse,
    NotFoundObjectResponse,
    NotFoundResponse,
    OkObjectResponse,
)
from idempotent_api.storage.memory import MemoryCacheStore

configure_logging(level="INFO", json_output=False)

store = MemoryCacheStore()
config = IdempotencyConfig.from_env()


@asynccontextmanager
async def lifespan(app: FastAPI):
    cleanup_task = await start_cleanup_task(store, interval_seconds=config.cleanup_interval_seconds)
    yield
    await stop_cleanup_task(cleanup_task)


app = FastAPI(
    title="Idempotency Keys Demo",
    description="Demo API showing idempotent order creation",
    version="0.1.0",
    lifespan=lifespan,
)
install_idempotency(app, store, config)
app.mount("/metrics", make_asgi_app())


# Request/Response Models
class OrderRequest(BaseModel):
    item: str
    qty: int


class OrderUpdate(BaseModel):
    qty: int


class Order(BaseModel):
    id: int
    item: str
    qty: int
    status: str = "confirmed"
    created_at: str


orders: dict[int, Order] = {}


# Endpoints
@app.get("/")
async def root():
    """Root endpoint - returns API info."""
    return {
        "name": "Idempotency Keys Demo",
        "version": "0.1.0",
        "endpoints": {
            "POST /orders": "Create an order (idempotent)",
            "PATCH /orders/{order_id}": "Change an order's quantity (idempotent)",
            "POST /orders/{order_id}/cancel": "Cancel an order (idempotent)",
            "GET /orders/{order_id}": "Fetch an order (safe method, no idempotency)",
            "GET /metrics": "Prometheus metrics",
        },
        "usage": f"Include the '{config.header_name}' header in {', '.join(config.enabled_methods)} requests",
    }


@app.post("/orders")
async def create_order(order: OrderRequest) -> CreatedAtRouteResponse:
    """Create an order.

    Retrying with the same key and body returns the first response without
    creating a second order.
    """
    saved = Order(
        id=len(orders) + 1,
        item=order.item,
        qty=order.qty,
        created_at=datetime.now(UTC).isoformat(),
    )
    orders[saved.id] = saved
    return CreatedAtRouteResponse("GetOrder", {"order_id": saved.id}, saved)


@app.get("/orders/{order_id}", name="GetOrder")
async def get_order(order_id: int):
    order = orders.get(order_id)
    if order is None:
        return NotFoundResponse()
    return OkObjectResponse(order)


@app.patch("/orders/{order_id}")
async def update_order(order_id: int, update: OrderUpdate):
    order = orders.get(order_id)
    if order is None:
        return NotFoundObjectResponse({"detail": f"Order {order_id} not found"})
    order.qty = update.qty
    return OkObjectResponse(order)


@app.post("/orders/{order_id}/cancel")
async def cancel_order(order_id: int):
    order = orders.get(order_id)
    if order is None:
        return NotFoundResponse()
    order.status = "cancelled"
    return NoContentResponse()


if __name__ == "__main__":
    print("=" * 60)
    print("Idempotency Keys Demo Server")
    print("=" * 60)
    print("\nStarting server at http://localhost:8000")
    print("\nTry these commands:")
    print("  curl http://localhost:8000")
    print(f"  curl -X POST http://localhost:8000/orders -H '{config.header_name}: abc123' \\")
    print("       -H 'Content-Type: application/json' -d '{\"item\":\"X\",\"qty\":2}'")
    print("\nPress Ctrl+C to stop")
    print("=" * 60)
    print()

    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
