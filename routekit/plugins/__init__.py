"""
RouteKit Plugins — The Route Capability Contract.

- RoutePlugin: required methods every platform implements
- Capability mixins: optional behaviour with explicit defaults
- HttpRoute: base for REST-backed platforms (httpx)
- PluginRegistry: route id to plugin instance
"""
from routekit.plugins.base import (
    AuthCapability,
    CallCapability,
    ConversationCapability,
    EventConsumer,
    HistorySyncCapability,
    MessageEditingCapability,
    MetadataCapability,
    ReactionCapability,
    RoutePlugin,
    TypingCapability,
)
from routekit.plugins.http_route import HttpRoute
from routekit.plugins.registry import PluginRegistration, PluginRegistry

__all__ = [
    "RoutePlugin",
    "AuthCapability",
    "CallCapability",
    "ConversationCapability",
    "EventConsumer",
    "HistorySyncCapability",
    "MessageEditingCapability",
    "MetadataCapability",
    "ReactionCapability",
    "TypingCapability",
    "HttpRoute",
    "PluginRegistration",
    "PluginRegistry",
]
