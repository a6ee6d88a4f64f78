"""Cache entry encoding.

Entries are stored as UTF-8 JSON produced by pydantic. The result descriptor
carries an explicit ``kind`` tag; decoding dispatches on that tag alone and
never looks up types by name.

Examples:
    >>> from idempotent_api.models import CacheEntry, StatusOnlyDescriptor
    >>> entry = CacheEntry(
    ...     request_fingerprint="a" * 64,
    ...     response_status_code=204,
    ...     result=StatusOnlyDescriptor(),
    ... )
    >>> decode_entry(encode_entry(entry)) == entry
    True
"""

from pydantic import ValidationError

from idempotent_api.exceptions import CorruptCacheEntryError
from idempotent_api.models import CacheEntry


def encode_entry(entry: CacheEntry) -> bytes:
    """Serialize a cache entry for the store."""
    return entry.model_dump_json().encode("utf-8")


def decode_entry(data: bytes) -> CacheEntry:
    """Deserialize bytes read from the store.

    Args:
        data: Bytes previously produced by encode_entry

    Returns:
        The decoded cache entry

    Raises:
        CorruptCacheEntryError: The bytes are not valid JSON, carry an unknown
            result kind, or do not match the entry schema
    """
    try:
        return CacheEntry.model_validate_json(data)
    except ValidationError as e:
        raise CorruptCacheEntryError(
            message=f"Cache entry could not be decoded: {e.error_count()} error(s)",
            cause=e,
        ) from e
