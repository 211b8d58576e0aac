"""
RouteKit Plugin Registry — Route ID to Plugin Instance.

Holds the plugin behind each registered route together with registration
metadata. Owned by the facade; managers never see plugins.
"""
from __future__ import annotations
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from routekit.models.base import utcnow
from routekit.plugins.base import RoutePlugin


class PluginRegistration(BaseModel):
    """Registered plugin metadata."""
    route_id: str
    platform: str
    display_name: str
    plugin_class: str
    registered_at: datetime = Field(default_factory=utcnow)


class PluginRegistry:
    """Central registry for route plugins."""

    def __init__(self):
        self._plugins: dict[str, RoutePlugin] = {}
        self._registrations: dict[str, PluginRegistration] = {}

    def register(self, plugin: RoutePlugin) -> PluginRegistration:
        """Register (or replace) the plugin for its route id."""
        registration = PluginRegistration(
            route_id=plugin.route_id,
            platform=plugin.platform,
            display_name=plugin.display_name,
            plugin_class=type(plugin).__name__,
        )
        self._plugins[plugin.route_id] = plugin
        self._registrations[plugin.route_id] = registration
        return registration

    def deregister(self, route_id: str) -> Optional[RoutePlugin]:
        self._registrations.pop(route_id, None)
        return self._plugins.pop(route_id, None)

    def get(self, route_id: str) -> Optional[RoutePlugin]:
        return self._plugins.get(route_id)

    def get_registration(self, route_id: str) -> Optional[PluginRegistration]:
        return self._registrations.get(route_id)

    def list_plugins(self, platform: Optional[str] = None) -> list[RoutePlugin]:
        plugins = list(self._plugins.values())
        if platform:
            plugins = [p for p in plugins if p.platform == platform]
        return plugins

    def list_registrations(self) -> list[PluginRegistration]:
        return list(self._registrations.values())

    def __contains__(self, route_id: str) -> bool:
        return route_id in self._plugins

    @property
    def route_count(self) -> int:
        return len(self._plugins)
