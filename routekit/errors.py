"""
RouteKit Errors — Typed Failures for the Resilience Core.

Every manager raises a subclass of RouteKitError so callers can catch a
whole category at once:
- StateError: route lookup and lifecycle preconditions
- QueueError: event queue capacity
- ReconnectionError: reconnection scheduling
- RetryError: retry budget exhaustion

Errors raised by route plugins are never wrapped; they reach the caller
of the top-level operation unchanged.
"""
from __future__ import annotations


class RouteKitError(Exception):
    """Base class for all RouteKit errors."""


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

class StateError(RouteKitError):
    pass


class InvalidState(StateError):
    def __init__(self, current: str, required: str):
        self.current = current
        self.required = required
        super().__init__(f"Invalid state: current={current}, required={required}")


class RouteNotFound(StateError):
    def __init__(self, route_id: str):
        self.route_id = route_id
        super().__init__(f"Route not found: {route_id}")


class RouteNotConnected(StateError):
    def __init__(self, route_id: str):
        self.route_id = route_id
        super().__init__(f"Route is not connected: {route_id}")


# ---------------------------------------------------------------------------
# Queue
# ---------------------------------------------------------------------------

class QueueError(RouteKitError):
    pass


class EventQueueFull(QueueError):
    def __init__(self, max_size: int):
        self.max_size = max_size
        super().__init__(f"Event queue is full ({max_size} events)")


# ---------------------------------------------------------------------------
# Reconnection
# ---------------------------------------------------------------------------

class ReconnectionError(RouteKitError):
    pass


class ReconnectionDisabled(ReconnectionError):
    def __init__(self, route_id: str):
        self.route_id = route_id
        super().__init__(f"Reconnection is disabled for route {route_id}")


class ReconnectionInProgress(ReconnectionError):
    def __init__(self, route_id: str):
        self.route_id = route_id
        super().__init__(f"Reconnection already in progress for route {route_id}")


class MaxReconnectionAttemptsReached(ReconnectionError):
    def __init__(self, route_id: str, max_attempts: int):
        self.route_id = route_id
        self.max_attempts = max_attempts
        super().__init__(
            f"Maximum reconnection attempts reached for route {route_id} ({max_attempts})"
        )


# ---------------------------------------------------------------------------
# Retry
# ---------------------------------------------------------------------------

class RetryError(RouteKitError):
    pass


class MaxRetryAttemptsReached(RetryError):
    def __init__(self, operation_id: str, max_attempts: int):
        self.operation_id = operation_id
        self.max_attempts = max_attempts
        super().__init__(
            f"Maximum retry attempts reached for {operation_id} ({max_attempts})"
        )


# ---------------------------------------------------------------------------
# Storage / plugins
# ---------------------------------------------------------------------------

class StorageError(RouteKitError):
    pass


class UnsupportedOperation(RouteKitError):
    """Raised by optional plugin capabilities a route does not implement."""

    def __init__(self, platform: str, operation: str):
        self.platform = platform
        self.operation = operation
        super().__init__(f"{platform} route does not support {operation}")
