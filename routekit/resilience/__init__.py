"""
RouteKit Resilience — Retry and Reconnection Primitives.

Provides the backoff machinery used around route plugin calls:
- RetryManager: bounded retry with exponential backoff per operation id
- ReconnectionManager: per-route reconnection budget and scheduling
"""
from routekit.resilience.reconnection import (
    ReconnectionAttemptRecord,
    ReconnectionConfig,
    ReconnectionManager,
)
from routekit.resilience.retry import (
    RetryManager,
    RetryPolicy,
    RetryRecord,
    compute_backoff,
)

__all__ = [
    # Retry
    "RetryManager",
    "RetryPolicy",
    "RetryRecord",
    "compute_backoff",
    # Reconnection
    "ReconnectionAttemptRecord",
    "ReconnectionConfig",
    "ReconnectionManager",
]
