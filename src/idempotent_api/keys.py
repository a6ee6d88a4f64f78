"""Idempotency key extraction.

The key is an opaque string sent by the client in a configurable header. It is
never interpreted, only compared for equality and used as the cache key.
"""

from collections.abc import Iterable

from idempotent_api.config import DEFAULT_HEADER_NAME
from idempotent_api.exceptions import (
    EmptyHeaderValueError,
    MissingHeaderError,
    MultipleHeaderValuesError,
)
from idempotent_api.utils.headers import get_header_values


def extract_idempotency_key(
    headers: Iterable[tuple[str, str]],
    header_name: str = DEFAULT_HEADER_NAME,
) -> str:
    """Extract and validate the idempotency key from request headers.

    Args:
        headers: Raw request header pairs, duplicates preserved
        header_name: Name of the idempotency header (case-insensitive)

    Returns:
        The key, with surrounding whitespace stripped

    Raises:
        MissingHeaderError: The header was not sent
        EmptyHeaderValueError: The header was sent with a blank value
        MultipleHeaderValuesError: The header was sent more than once

    Examples:
        >>> extract_idempotency_key([("idempotencykey", "abc123")])
        'abc123'
    """
    values = get_header_values(headers, header_name)
    if not values:
        raise MissingHeaderError(header_name)

    present = [value.strip() for value in values if value.strip()]
    if not present:
        raise EmptyHeaderValueError(header_name)
    if len(present) > 1:
        raise MultipleHeaderValuesError(header_name, len(present))

    return present[0]
