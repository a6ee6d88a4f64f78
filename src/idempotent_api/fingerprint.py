"""Request fingerprinting for idempotency.

A fingerprint identifies the logical operation a request performs. Two
requests sharing an idempotency key must produce the same fingerprint for the
cached response to be replayed; a different fingerprint means the key was
reused for a different request.

The fingerprint covers, in order and only when present:
1. The raw request body
2. The form fields (form-encoded requests only), in their original order
3. The request path

Adapters leave the raw body out for multipart requests, whose boundary
changes on every retry; the form fields then carry the content.
"""

import base64
import hashlib
import json
from collections.abc import Sequence
from typing import Any

from idempotent_api.models import RequestContext


def compute_fingerprint(
    body: bytes | None,
    form: Sequence[tuple[str, str]] | None,
    path: str | None,
) -> str:
    """Compute a deterministic fingerprint for request content.

    Each present component becomes a one-key JSON object in a list, so a
    missing body can never be mistaken for some other component. The list is
    serialized with compact separators and hashed with SHA-256.

    Args:
        body: Raw request body, or None if the request has none
        form: Form (name, value) pairs, or None if not form-encoded
        path: URL path, or None

    Returns:
        Hexadecimal SHA-256 hash string (64 characters)

    Examples:
        >>> fp = compute_fingerprint(b'{"item":"X","qty":2}', None, "/orders")
        >>> len(fp)
        64
    """
    components: list[dict[str, Any]] = []

    if body is not None:
        components.append({"body": base64.b64encode(body).decode("ascii")})

    if form is not None:
        components.append({"form": [[name, value] for name, value in form]})

    if path:
        components.append({"path": path})

    canonical = json.dumps(components, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def fingerprint_request(request: RequestContext) -> str:
    """Compute the fingerprint of a buffered request."""
    return compute_fingerprint(request.body, request.form, request.path)
