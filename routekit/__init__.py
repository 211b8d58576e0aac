"""RouteKit — resilience core for multi-platform chat clients.

Keeps every route (one connection to one chat backend) in a well-defined
lifecycle, queues events durably while a route is unreachable, replays them
on reconnect, retries failed operations with bounded exponential backoff and
reconnects dropped routes in the background.
"""

from routekit.config import RouteKitConfig
from routekit.errors import (
    EventQueueFull,
    InvalidState,
    MaxReconnectionAttemptsReached,
    MaxRetryAttemptsReached,
    ReconnectionDisabled,
    ReconnectionInProgress,
    RouteKitError,
    RouteNotConnected,
    RouteNotFound,
)
from routekit.models.schemas import Conversation, Event, EventType, Message
from routekit.plugins.base import RoutePlugin
from routekit.resilience import ReconnectionConfig, RetryPolicy
from routekit.sdk import RouteKit
from routekit.state import RouteState

__version__ = "1.0.0"

__all__ = [
    "RouteKit",
    "RouteKitConfig",
    "RoutePlugin",
    "RouteState",
    "RetryPolicy",
    "ReconnectionConfig",
    "Event",
    "EventType",
    "Message",
    "Conversation",
    "RouteKitError",
    "InvalidState",
    "RouteNotFound",
    "RouteNotConnected",
    "EventQueueFull",
    "ReconnectionDisabled",
    "ReconnectionInProgress",
    "MaxReconnectionAttemptsReached",
    "MaxRetryAttemptsReached",
]
