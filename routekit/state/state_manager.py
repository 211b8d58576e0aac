"""Route connection state machine with change notification.

Each route moves through the states of RouteState. No transition table is
enforced: the last write wins and callers sequence the writes. The manager
records every write and broadcasts it to:

- callbacks registered with register_state_change_callback (synchronous,
  in registration order), and
- per-route subscriptions returned by subscribe(), which first deliver the
  state current at subscribe time and then every later change.

Both notification channels can be detached when a consumer goes away.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from routekit.errors import InvalidState

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# State definitions
# ---------------------------------------------------------------------------

class RouteState(str, Enum):
    """Connection lifecycle states of a route."""

    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    RECONNECTING = "RECONNECTING"
    DISCONNECTING = "DISCONNECTING"
    ERROR = "ERROR"


StateChangeCallback = Callable[[str, RouteState], None]


@dataclass
class RouteStateRecord:
    """Current state of one route.

    error is only ever set together with RouteState.ERROR.
    """

    state: RouteState
    last_state_change: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: str | None = None
    error_timestamp: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "last_state_change": self.last_state_change.isoformat(),
            "error": self.error,
            "error_timestamp": self.error_timestamp.isoformat() if self.error_timestamp else None,
        }


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------

_CLOSED = object()


class StateSubscription:
    """Live, per-route stream of state changes.

    Usage::

        async with await manager.subscribe("discord-1") as states:
            async for state in states:
                render(state)
    """

    def __init__(self, manager: "RouteStateManager", route_id: str):
        self.route_id = route_id
        self._manager = manager
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    def _push(self, state: RouteState) -> None:
        if not self._closed:
            self._queue.put_nowait(state)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Detach from the manager; pending iteration ends."""
        if self._closed:
            return
        self._closed = True
        self._manager._unsubscribe(self)
        self._queue.put_nowait(_CLOSED)

    async def get(self) -> RouteState:
        """Wait for the next state."""
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item

    def __aiter__(self) -> "StateSubscription":
        return self

    async def __anext__(self) -> RouteState:
        return await self.get()

    async def __aenter__(self) -> "StateSubscription":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()


# ---------------------------------------------------------------------------
# State manager
# ---------------------------------------------------------------------------

class RouteStateManager:
    """Owns the state record of every route."""

    def __init__(self):
        self._states: dict[str, RouteStateRecord] = {}
        self._callbacks: list[StateChangeCallback] = []
        self._subscriptions: dict[str, list[StateSubscription]] = {}
        self._lock = asyncio.Lock()

    # -- Writes --

    async def set_state(self, route_id: str, state: RouteState) -> None:
        """Record a state and clear any previous error."""
        async with self._lock:
            now = datetime.now(timezone.utc)
            record = self._states.get(route_id)
            if record is None:
                record = RouteStateRecord(state=state, last_state_change=now)
                self._states[route_id] = record
            record.state = state
            record.last_state_change = now
            record.error = None
            record.error_timestamp = None
            self._notify(route_id, state)

    async def set_error(self, route_id: str, message: str) -> None:
        """Move the route to ERROR with a message."""
        async with self._lock:
            now = datetime.now(timezone.utc)
            record = self._states.get(route_id)
            if record is None:
                record = RouteStateRecord(state=RouteState.ERROR, last_state_change=now)
                self._states[route_id] = record
            record.state = RouteState.ERROR
            record.last_state_change = now
            record.error = message
            record.error_timestamp = now
            self._notify(route_id, RouteState.ERROR)

    async def clear_state(self, route_id: str) -> None:
        async with self._lock:
            self._states.pop(route_id, None)

    # -- Reads --

    async def get_state(self, route_id: str) -> RouteState:
        async with self._lock:
            return self._state_of(route_id)

    async def get_error(self, route_id: str) -> str | None:
        async with self._lock:
            record = self._states.get(route_id)
            return record.error if record else None

    async def get_record(self, route_id: str) -> RouteStateRecord | None:
        async with self._lock:
            return self._states.get(route_id)

    async def get_all_states(self) -> dict[str, RouteState]:
        async with self._lock:
            return {route_id: record.state for route_id, record in self._states.items()}

    async def get_time_since_last_state_change(self, route_id: str) -> float:
        """Seconds since the last write, 0.0 for unknown routes."""
        async with self._lock:
            record = self._states.get(route_id)
            if record is None:
                return 0.0
            return (datetime.now(timezone.utc) - record.last_state_change).total_seconds()

    async def is_connected(self, route_id: str) -> bool:
        return await self.get_state(route_id) == RouteState.CONNECTED

    async def is_connecting(self, route_id: str) -> bool:
        state = await self.get_state(route_id)
        return state in (RouteState.CONNECTING, RouteState.RECONNECTING)

    async def has_error(self, route_id: str) -> bool:
        return await self.get_state(route_id) == RouteState.ERROR

    async def validate_state(self, route_id: str, required: RouteState) -> None:
        """Raise InvalidState unless the route is in the required state."""
        current = await self.get_state(route_id)
        if current != required:
            raise InvalidState(current=current.value, required=required.value)

    def _state_of(self, route_id: str) -> RouteState:
        record = self._states.get(route_id)
        return record.state if record else RouteState.DISCONNECTED

    # -- Notification --

    def register_state_change_callback(
        self, callback: StateChangeCallback
    ) -> Callable[[], None]:
        """Register a callback; returns a function that unregisters it."""
        self._callbacks.append(callback)

        def unregister() -> None:
            self.unregister_state_change_callback(callback)

        return unregister

    def unregister_state_change_callback(self, callback: StateChangeCallback) -> bool:
        try:
            self._callbacks.remove(callback)
        except ValueError:
            return False
        return True

    async def subscribe(self, route_id: str) -> StateSubscription:
        """Open a stream that starts with the route's current state."""
        async with self._lock:
            subscription = StateSubscription(self, route_id)
            subscription._push(self._state_of(route_id))
            self._subscriptions.setdefault(route_id, []).append(subscription)
            return subscription

    def subscriber_count(self, route_id: str) -> int:
        return len(self._subscriptions.get(route_id, []))

    def _unsubscribe(self, subscription: StateSubscription) -> None:
        subs = self._subscriptions.get(subscription.route_id)
        if not subs:
            return
        if subscription in subs:
            subs.remove(subscription)
        if not subs:
            del self._subscriptions[subscription.route_id]

    def _notify(self, route_id: str, state: RouteState) -> None:
        for callback in list(self._callbacks):
            try:
                callback(route_id, state)
            except Exception:
                logger.exception("State change callback failed for route %s", route_id)
        for subscription in self._subscriptions.get(route_id, []):
            subscription._push(state)
