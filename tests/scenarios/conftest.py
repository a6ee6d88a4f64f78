"""Shared orders application for the scenario tests."""

import asyncio
from collections.abc import Callable

import pytest
from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.testclient import TestClient
from pydantic import BaseModel
from starlette.responses import PlainTextResponse

from idempotent_api.adapters import IdempotentRoute, install_idempotency
from idempotent_api.config import IdempotencyConfig
from idempotent_api.results import (
    CreatedAtRouteResponse,
    NoContentResponse,
    NotFoundObjectResponse,
    NotFoundResponse,
    OkObjectResponse,
)
from idempotent_api.storage.base import CacheStore


class OrderIn(BaseModel):
    item: str
    qty: int


class OrderPatch(BaseModel):
    qty: int


class Order(OrderIn):
    id: int
    cancelled: bool = False


class OrderRepository:
    """In-memory orders that count every handler side effect."""

    def __init__(self) -> None:
        self.orders: dict[int, Order] = {}
        self.handler_calls = 0

    def add(self, order: OrderIn) -> Order:
        self.handler_calls += 1
        saved = Order(id=len(self.orders) + 1, **order.model_dump())
        self.orders[saved.id] = saved
        return saved


def create_app(
    store: CacheStore | None,
    repository: OrderRepository,
    config: IdempotencyConfig | None = None,
    handler_delay: float = 0.0,
) -> FastAPI:
    """Create the orders app with every route protected by the filter."""
    app = FastAPI()
    if store is not None:
        install_idempotency(app, store, config)
    else:
        app.router.route_class = IdempotentRoute

    @app.post("/orders")
    async def create_order(order: OrderIn) -> CreatedAtRouteResponse:
        if handler_delay:
            await asyncio.sleep(handler_delay)
        saved = repository.add(order)
        return CreatedAtRouteResponse("GetOrder", {"order_id": saved.id}, saved)

    @app.post("/orders/form")
    async def create_order_from_form(item: str = Form(...), qty: int = Form(...)) -> CreatedAtRouteResponse:
        saved = repository.add(OrderIn(item=item, qty=qty))
        return CreatedAtRouteResponse("GetOrder", {"order_id": saved.id}, saved)

    @app.post("/orders/upload")
    async def create_order_with_receipt(
        item: str = Form(...),
        qty: int = Form(...),
        receipt: UploadFile = File(...),
    ) -> CreatedAtRouteResponse:
        saved = repository.add(OrderIn(item=item, qty=qty))
        value = {**saved.model_dump(), "receipt": (await receipt.read()).decode("utf-8")}
        return CreatedAtRouteResponse("GetOrder", {"order_id": saved.id}, value)

    @app.post("/orders/unrouted")
    async def create_unrouted_order(order: OrderIn) -> CreatedAtRouteResponse:
        saved = repository.add(order)
        return CreatedAtRouteResponse("NoSuchRoute", {"order_id": saved.id}, saved)

    @app.post("/orders/plain")
    async def create_plain_order(order: OrderIn) -> PlainTextResponse:
        repository.add(order)
        return PlainTextResponse("created")

    @app.post("/orders/dict")
    async def create_dict_order(order: OrderIn):
        return repository.add(order).model_dump()

    @app.get("/orders/{order_id}", name="GetOrder")
    async def get_order(order_id: int):
        order = repository.orders.get(order_id)
        if order is None:
            return NotFoundResponse()
        return OkObjectResponse(order)

    @app.patch("/orders/{order_id}")
    async def update_order(order_id: int, patch: OrderPatch):
        repository.handler_calls += 1
        order = repository.orders.get(order_id)
        if order is None:
            return NotFoundObjectResponse({"detail": f"order {order_id} not found"})
        order.qty = patch.qty
        return OkObjectResponse(order)

    @app.put("/orders/{order_id}")
    async def replace_order(order_id: int, order: OrderIn) -> OkObjectResponse:
        repository.handler_calls += 1
        saved = Order(id=order_id, **order.model_dump())
        repository.orders[order_id] = saved
        return OkObjectResponse(saved)

    @app.delete("/orders/{order_id}")
    async def delete_order(order_id: int) -> NoContentResponse:
        repository.handler_calls += 1
        repository.orders.pop(order_id, None)
        return NoContentResponse()

    @app.post("/orders/{order_id}/cancel")
    async def cancel_order(order_id: int) -> NoContentResponse:
        repository.handler_calls += 1
        order = repository.orders.get(order_id)
        if order is None:
            raise HTTPException(status_code=404, detail="Order not found")
        order.cancelled = True
        return NoContentResponse()

    return app


@pytest.fixture
def repository() -> OrderRepository:
    """Provide an empty orders repository."""
    return OrderRepository()


@pytest.fixture
def make_app(store, repository, config):
    """Provide a factory for orders apps sharing the test's store and repository."""

    def _make(store=store, config=config, handler_delay: float = 0.0) -> FastAPI:
        return create_app(store, repository, config, handler_delay)

    return _make


@pytest.fixture
def client(make_app) -> TestClient:
    """Provide a TestClient for the default orders app."""
    return TestClient(make_app())


@pytest.fixture
def order_headers() -> Callable[..., dict[str, str]]:
    """Provide a factory for JSON request headers carrying an idempotency key."""

    def _make(key: str | None = "abc123", **extra: str) -> dict[str, str]:
        headers = {"content-type": "application/json", **extra}
        if key is not None:
            headers["IdempotencyKey"] = key
        return headers

    return _make
