"""Header lookup and manipulation utilities.

This module provides functions for:
- Case-insensitive multi-value header lookup on raw header pairs
- Grouping response headers for storage
- Restoring cached headers on replayed responses
- Adding replay-specific headers
"""

from collections.abc import Iterable

from starlette.datastructures import MutableHeaders

# Headers that are never restored on replayed responses.
# These are volatile or describe the original transfer, not the payload.
VOLATILE_HEADERS = {
    "date",
    "server",
    "connection",
    "transfer-encoding",
    "keep-alive",
    "trailer",
    "upgrade",
    "proxy-connection",
    "proxy-authenticate",
    "proxy-authorization",
    "content-length",
}

REPLAY_HEADER = "Idempotent-Replay"


def get_header_values(headers: Iterable[tuple[str, str]], header_name: str) -> list[str]:
    """Return every value sent for a header, in order.

    Args:
        headers: Raw (name, value) pairs; duplicates are preserved
        header_name: Name of header to find (case-insensitive)

    Returns:
        All values for the header, empty if it was not sent

    Example:
        >>> get_header_values([("IdempotencyKey", "a"), ("idempotencykey", "b")], "IDEMPOTENCYKEY")
        ['a', 'b']
    """
    header_name_lower = header_name.lower()
    return [value for key, value in headers if key.lower() == header_name_lower]


def group_headers(headers: Iterable[tuple[str, str]]) -> dict[str, list[str]]:
    """Group raw header pairs into a name -> values mapping.

    Example:
        >>> group_headers([("set-cookie", "a=1"), ("set-cookie", "b=2"), ("etag", "x")])
        {'set-cookie': ['a=1', 'b=2'], 'etag': ['x']}
    """
    grouped: dict[str, list[str]] = {}
    for key, value in headers:
        grouped.setdefault(key.lower(), []).append(value)
    return grouped


def restore_headers(target: MutableHeaders, cached: dict[str, list[str]]) -> None:
    """Copy cached headers onto a rebuilt response.

    Headers the rebuilt response already carries win, and volatile headers
    are skipped.
    """
    for name, values in cached.items():
        if name.lower() in VOLATILE_HEADERS or name in target:
            continue
        for value in values:
            target.append(name, value)


def add_replay_headers(headers: MutableHeaders, is_replay: bool = True) -> None:
    """Mark a response as served from the idempotency cache.

    Example:
        >>> from starlette.responses import Response
        >>> response = Response()
        >>> add_replay_headers(response.headers)
        >>> response.headers["Idempotent-Replay"]
        'true'
    """
    headers[REPLAY_HEADER] = "true" if is_replay else "false"
