"""Tests for the FastAPI route integration."""

import hashlib

import pytest
from fastapi import FastAPI
from starlette.requests import Request

from idempotent_api.adapters.fastapi_route import (
    IdempotentRoute,
    build_request_context,
    install_idempotency,
)
from idempotent_api.config import IdempotencyConfig
from idempotent_api.core.locks import KeyedLocks


def make_starlette_request(method: str, path: str, body: bytes = b"", headers=None) -> Request:
    raw_headers = [(name.lower().encode("latin-1"), value.encode("latin-1")) for name, value in headers or []]
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "raw_path": path.encode("ascii"),
        "query_string": b"",
        "headers": raw_headers,
        "scheme": "http",
        "server": ("testserver", 80),
        "root_path": "",
    }
    sent = False

    async def receive():
        nonlocal sent
        if sent:
            return {"type": "http.disconnect"}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


@pytest.mark.asyncio
async def test_json_request_context():
    request = make_starlette_request(
        "POST",
        "/orders",
        b'{"item":"X","qty":2}',
        [("Content-Type", "application/json"), ("IdempotencyKey", "abc123")],
    )

    context = await build_request_context(request, IdempotencyConfig())

    assert context.method == "POST"
    assert context.path == "/orders"
    assert context.body == b'{"item":"X","qty":2}'
    assert context.form is None
    assert ("idempotencykey", "abc123") in context.headers


@pytest.mark.asyncio
async def test_empty_body_becomes_none():
    request = make_starlette_request("POST", "/orders/1/cancel", b"", [("IdempotencyKey", "abc123")])

    context = await build_request_context(request, IdempotencyConfig())

    assert context.body is None


@pytest.mark.asyncio
async def test_form_fields_are_captured_in_order():
    request = make_starlette_request(
        "POST",
        "/orders/form",
        b"qty=2&item=X&item=Y",
        [("Content-Type", "application/x-www-form-urlencoded")],
    )

    context = await build_request_context(request, IdempotencyConfig())

    assert context.body == b"qty=2&item=X&item=Y"
    assert context.form == [("qty", "2"), ("item", "X"), ("item", "Y")]


@pytest.mark.asyncio
async def test_body_is_still_readable_after_buffering():
    request = make_starlette_request("POST", "/orders", b"{}", [("Content-Type", "application/json")])

    await build_request_context(request, IdempotencyConfig())

    assert await request.body() == b"{}"


@pytest.mark.asyncio
async def test_unprotected_method_body_is_not_read():
    request = make_starlette_request("PUT", "/orders/1", b"{}", [("Content-Type", "application/json")])

    context = await build_request_context(request, IdempotencyConfig())

    assert context.body is None
    assert not hasattr(request, "_body")


def test_install_idempotency_sets_app_state(store):
    app = FastAPI()

    install_idempotency(app, store)

    assert app.state.idempotency_store is store
    assert app.state.idempotency_config == IdempotencyConfig()
    assert isinstance(app.state.idempotency_locks, KeyedLocks)
    assert app.router.route_class is IdempotentRoute


def test_install_without_locks(store):
    app = FastAPI()

    install_idempotency(app, store, IdempotencyConfig(lock_same_key=False))

    assert app.state.idempotency_locks is None


def test_routes_declared_after_install_are_protected(store):
    app = FastAPI()
    install_idempotency(app, store)

    @app.post("/orders")
    async def create_order():
        return None

    route = next(r for r in app.routes if getattr(r, "path", None) == "/orders")
    assert isinstance(route, IdempotentRoute)


def _multipart(boundary: str, content: bytes) -> bytes:
    return (
        f"--{boundary}\r\n"
        'Content-Disposition: form-data; name="item"\r\n\r\n'
        "X\r\n"
        f"--{boundary}\r\n"
        'Content-Disposition: form-data; name="receipt"; filename="a.txt"\r\n'
        "Content-Type: text/plain\r\n\r\n"
    ).encode("latin-1") + content + f"\r\n--{boundary}--\r\n".encode("latin-1")


@pytest.mark.asyncio
async def test_multipart_context_ignores_boundary():
    contexts = []
    for boundary in ("first-boundary", "second-boundary"):
        request = make_starlette_request(
            "POST",
            "/orders/upload",
            _multipart(boundary, b"paid"),
            [("Content-Type", f"multipart/form-data; boundary={boundary}")],
        )
        contexts.append(await build_request_context(request, IdempotencyConfig()))

    assert contexts[0] == contexts[1].model_copy(update={"headers": contexts[0].headers})
    assert contexts[0].body is None
    assert contexts[0].form == [("item", "X"), ("receipt", f"a.txt:{hashlib.sha256(b'paid').hexdigest()}")]


@pytest.mark.asyncio
async def test_uploaded_file_is_still_readable():
    request = make_starlette_request(
        "POST",
        "/orders/upload",
        _multipart("b", b"paid"),
        [("Content-Type", "multipart/form-data; boundary=b")],
    )

    await build_request_context(request, IdempotencyConfig())

    receipt = (await request.form())["receipt"]
    assert await receipt.read() == b"paid"
