"""Utility modules for the idempotency filter."""

from .headers import (
    REPLAY_HEADER,
    VOLATILE_HEADERS,
    add_replay_headers,
    get_header_values,
    group_headers,
    restore_headers,
)

__all__ = [
    "get_header_values",
    "group_headers",
    "restore_headers",
    "add_replay_headers",
    "REPLAY_HEADER",
    "VOLATILE_HEADERS",
]
