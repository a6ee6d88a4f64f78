"""Structured logging for the idempotency filter.

Every module logs through structlog with dotted event names
(``idempotency.pre.served``, ``idempotency.cache.corrupt``,
``cleanup.completed``) and keyword context such as the idempotency key, the
request path and the status code. Request-wide fields (method, path) are bound
once per request with request_log_context() and merged into every event
emitted while handling it.

Examples:
    At application startup::

        from idempotent_api.observability.logging import configure_logging

        configure_logging(level="INFO", json_output=True)

    In a module::

        logger = get_logger(__name__)
        logger.info("idempotency.pre.served", key="abc123", status_code=201)

    JSON output::

        {"key": "abc123", "status_code": 201, "event": "idempotency.pre.served",
         "level": "info", "timestamp": "2024-01-01T00:00:00.000000Z"}
"""

import logging
import sys
from contextlib import AbstractContextManager
from typing import Any

import structlog


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
) -> None:
    """Configure structlog and the standard library root logger.

    Call once at startup; later calls replace the configuration.

    Args:
        level: Minimum log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render JSON lines if True, colored console output if False

    Raises:
        ValueError: If level is not a known log level name
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)

    renderer: Any = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Return a structlog logger named after the calling module."""
    return structlog.get_logger(name)


def request_log_context(method: str, path: str) -> AbstractContextManager[Any]:
    """Bind the request method and path to every event logged inside the block.

    Example:
        >>> with request_log_context("POST", "/orders"):
        ...     get_logger(__name__).info("idempotency.pre.miss", key="abc123")
    """
    return structlog.contextvars.bound_contextvars(method=method, path=path)
