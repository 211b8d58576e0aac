"""Per-route connection state tracking and change streams."""
from routekit.state.state_manager import (
    RouteState,
    RouteStateManager,
    RouteStateRecord,
    StateChangeCallback,
    StateSubscription,
)

__all__ = [
    "RouteState",
    "RouteStateManager",
    "RouteStateRecord",
    "StateChangeCallback",
    "StateSubscription",
]
