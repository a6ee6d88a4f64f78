"""Core idempotency logic.

This package contains the framework-agnostic parts of the filter:
- Coordinator: the pre-phase / post-phase state machine
- Capture: handler response -> cache entry
- Replay: cache entry -> equivalent response
- Locks: in-process per-key serialization
- Cleanup: purging expired entries

Framework adapters build a RequestContext and drive the coordinator.
"""

from idempotent_api.core.coordinator import Idempotency, PreResult, process_request
from idempotent_api.core.replay import reconstruct_response

__all__ = ["Idempotency", "PreResult", "process_request", "reconstruct_response"]
