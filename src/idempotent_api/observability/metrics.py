"""Prometheus metrics for the idempotency filter.

Metrics include:

- Request counters by coordination outcome (served, pass_through, conflict...)
- Corrupt cache entries that were treated as misses
- Cache entries written
- Cleanup operation tracking

Examples:
    Recording a replayed request::

        from idempotent_api.observability.metrics import record_outcome

        record_outcome("served")

    Recording cleanup operations::

        from idempotent_api.observability.metrics import record_cleanup

        record_cleanup(records_removed=42)
"""

from prometheus_client import Counter

# Labels: outcome (skipped, rejected, pass_through, conflict, served)
requests_total = Counter(
    "idempotency_requests_total",
    "Total number of requests seen by the idempotency pre-phase",
    ["outcome"],
)

corrupt_entries_total = Counter(
    "idempotency_corrupt_entries_total",
    "Cache entries that could not be decoded and were treated as misses",
)

entries_stored_total = Counter(
    "idempotency_entries_stored_total",
    "Cache entries written by the idempotency post-phase",
)

cleanup_operations = Counter(
    "idempotency_cleanup_operations_total",
    "Total number of cleanup operations performed",
)

cleanup_records_removed = Counter(
    "idempotency_cleanup_records_removed_total",
    "Total number of expired entries removed by cleanup",
)


def record_outcome(outcome: str) -> None:
    """Record the pre-phase outcome of a request.

    Examples:
        >>> record_outcome("served")
        >>> record_outcome("conflict")
    """
    requests_total.labels(outcome=outcome).inc()


def record_corrupt_entry() -> None:
    corrupt_entries_total.inc()


def record_entry_stored() -> None:
    entries_stored_total.inc()


def record_cleanup(records_removed: int) -> None:
    """Record a cleanup operation.

    Args:
        records_removed: Number of expired entries removed

    Examples:
        >>> record_cleanup(42)
    """
    cleanup_operations.inc()
    cleanup_records_removed.inc(records_removed)
