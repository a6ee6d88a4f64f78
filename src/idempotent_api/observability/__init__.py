"""Observability utilities for the idempotency filter.

This package provides monitoring and debugging capabilities:
- Prometheus metrics for coordination outcomes and cache writes
- Structured logging with contextual information
"""

from idempotent_api.observability.logging import configure_logging, get_logger, request_log_context
from idempotent_api.observability.metrics import (
    record_cleanup,
    record_corrupt_entry,
    record_entry_stored,
    record_outcome,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "request_log_context",
    "record_outcome",
    "record_corrupt_entry",
    "record_entry_stored",
    "record_cleanup",
]
