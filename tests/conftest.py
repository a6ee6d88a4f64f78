"""
Pytest configuration and shared fixtures for idempotent_api tests.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from idempotent_api.config import IdempotencyConfig
from idempotent_api.models import RequestContext
from idempotent_api.storage.memory import MemoryCacheStore


class FakeClock:
    """A controllable clock for TTL tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    """Provide a clock frozen at 2024-01-01 12:00 UTC."""
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> MemoryCacheStore:
    """Provide an empty in-memory store driven by the fake clock."""
    return MemoryCacheStore(clock=clock)


@pytest.fixture
def config() -> IdempotencyConfig:
    """Provide the default configuration."""
    return IdempotencyConfig()


@pytest.fixture
def sample_idempotency_key() -> str:
    """Provide a sample idempotency key for tests."""
    return "abc123"


@pytest.fixture
def sample_request_body() -> bytes:
    """Provide a sample request body for tests."""
    return b'{"item":"X","qty":2}'


@pytest.fixture
def make_request(
    sample_idempotency_key: str,
    sample_request_body: bytes,
) -> Callable[..., RequestContext]:
    """Provide a factory for RequestContext objects.

    Defaults to ``POST /orders`` with the sample key and body; pass
    ``key=None`` to omit the idempotency header.
    """

    def _make(
        method: str = "POST",
        path: str = "/orders",
        key: str | None = sample_idempotency_key,
        body: bytes | None = sample_request_body,
        form: list[tuple[str, str]] | None = None,
        headers: list[tuple[str, str]] | None = None,
    ) -> RequestContext:
        raw_headers = [("content-type", "application/json")]
        if key is not None:
            raw_headers.append(("idempotencykey", key))
        raw_headers.extend(headers or [])
        return RequestContext(method=method, path=path, headers=raw_headers, body=body, form=form)

    return _make
