"""
RouteKit SDK — Route Lifecycle Coordinator.

Single entry point composing the resilience core around route plugins:

    register_route → connect_route → send_message / queue_event → disconnect_route

connect_route pipeline:
    CONNECTING → RetryManager(plugin.connect) → CONNECTED → replay queue → reset reconnection
                                  ↓ failure
                   ERROR → schedule reconnection task (if budget left) → re-raise

The cross-manager steps are not one transaction: a crash between CONNECTED
and the queue replay leaves events queued until the next connect.
"""
from __future__ import annotations
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union
import asyncio
import logging
import uuid

from routekit.config import RouteKitConfig, sqlite_url
from routekit.database import StorageManager
from routekit.errors import ReconnectionError, RouteNotConnected, RouteNotFound
from routekit.events.queue import EventQueueManager
from routekit.models.base import utcnow
from routekit.models.db_models import RouteRecord
from routekit.models.schemas import (
    Conversation,
    Event,
    Message,
    MessageContentType,
    RouteInfo,
)
from routekit.observability.tracing import get_tracer, route_span
from routekit.plugins.base import EventConsumer, RoutePlugin
from routekit.plugins.registry import PluginRegistry
from routekit.resilience.reconnection import ReconnectionConfig, ReconnectionManager
from routekit.resilience.retry import RetryManager, RetryPolicy
from routekit.security.credentials import CredentialStore
from routekit.state.state_manager import RouteState, RouteStateManager, StateSubscription
from routekit.storage.repositories import (
    ConversationRepository,
    EventStore,
    MessageRepository,
    RouteRepository,
)

logger = logging.getLogger(__name__)

EventHandler = Callable[[Event], Union[Awaitable[None], None]]


class RouteKit:
    """Facade owning the plugin registry and the four resilience managers."""

    def __init__(
        self,
        config: RouteKitConfig | None = None,
        storage: StorageManager | None = None,
    ):
        self.config = config or RouteKitConfig.default()
        self.storage = storage or StorageManager(self.config.storage)
        self.credentials = CredentialStore(self.storage)
        self.state = RouteStateManager()
        self.events = EventQueueManager(
            EventStore(self.storage),
            max_queue_size=self.config.events.max_queue_size,
        )
        self.reconnection = ReconnectionManager(self.config.reconnection)
        self.retry = RetryManager()
        self.plugins = PluginRegistry()
        self._tracer = get_tracer()
        self._started = False

        self.events.register_processing_callback(self._deliver_to_route)

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------

    @classmethod
    async def create(
        cls,
        database_url: str | None = None,
        config: RouteKitConfig | None = None,
    ) -> "RouteKit":
        """Build an SDK, create tables and restore the event queue."""
        if config is None:
            config = (
                RouteKitConfig.for_database(database_url)
                if database_url
                else RouteKitConfig.from_env()
            )
        sdk = cls(config=config)
        await sdk.start()
        return sdk

    @staticmethod
    def database_url_for(path: str | Path) -> str:
        return sqlite_url(path)

    async def start(self) -> None:
        """Create tables and load unprocessed events. Idempotent."""
        if self._started:
            return
        await self.storage.init_db()
        await self.events.load_from_database()
        self._started = True

    async def close(self) -> None:
        """Cancel pending reconnections and release the database."""
        for plugin in self.plugins.list_plugins():
            await self.reconnection.cancel(plugin.route_id)
        await self.storage.close()
        self._started = False

    async def __aenter__(self) -> "RouteKit":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # -----------------------------------------------------------------------
    # Route management
    # -----------------------------------------------------------------------

    async def register_route(self, plugin: RoutePlugin) -> RouteInfo:
        route_id = plugin.route_id
        self.plugins.register(plugin)
        await self.state.set_state(route_id, RouteState.DISCONNECTED)

        async with self.storage.write() as session:
            record = await RouteRepository(session).upsert(
                RouteRecord(
                    id=route_id,
                    platform=plugin.platform,
                    display_name=plugin.display_name,
                    state=RouteState.DISCONNECTED.value,
                    metadata_json={},
                )
            )
            info = record.to_schema()

        logger.info("Registered %s route %s", plugin.platform, route_id)
        return info

    async def unregister_route(self, route_id: str) -> None:
        await self.reconnection.cancel(route_id)
        self.plugins.deregister(route_id)
        await self.state.clear_state(route_id)
        await self.events.clear_events(route_id)
        await self.credentials.clear_route(route_id)
        async with self.storage.write() as session:
            await RouteRepository(session).delete(route_id)
        logger.info("Unregistered route %s", route_id)

    def get_route(self, route_id: str) -> Optional[RoutePlugin]:
        return self.plugins.get(route_id)

    def get_all_routes(self) -> list[RoutePlugin]:
        return self.plugins.list_plugins()

    async def get_route_info(self, route_id: str) -> Optional[RouteInfo]:
        async with self.storage.read() as session:
            record = await RouteRepository(session).get(route_id)
            return record.to_schema() if record else None

    def _require_plugin(self, route_id: str) -> RoutePlugin:
        plugin = self.plugins.get(route_id)
        if plugin is None:
            raise RouteNotFound(route_id)
        return plugin

    # -----------------------------------------------------------------------
    # Connection management
    # -----------------------------------------------------------------------

    async def connect_route(self, route_id: str) -> None:
        """
        Connect a route, retrying per the configured policy.

        On failure the route is left in ERROR (or RECONNECTING when a
        background reconnection was scheduled) and the plugin's exception is
        re-raised unchanged.
        """
        plugin = self._require_plugin(route_id)
        with route_span(self._tracer, "connect", route_id, plugin.platform):
            try:
                await self._connect(route_id, plugin)
            except Exception:
                if await self.reconnection.can_reconnect(route_id):
                    await self._schedule_reconnection(route_id)
                raise

    async def _connect(self, route_id: str, plugin: RoutePlugin) -> None:
        await self.state.set_state(route_id, RouteState.CONNECTING)
        try:
            await self.retry.execute_with_retry(
                f"connect_{route_id}",
                self.config.retry_policy,
                plugin.connect,
            )
            await self.state.set_state(route_id, RouteState.CONNECTED)
            await self._persist_route_state(route_id, RouteState.CONNECTED)
            await self.events.process_events(route_id)
            # Also stops a background reconnection that is no longer needed.
            await self.reconnection.cancel(route_id)
        except Exception as exc:
            await self.state.set_error(route_id, str(exc) or type(exc).__name__)
            raise
        logger.info("Route %s connected", route_id)

    async def disconnect_route(self, route_id: str) -> None:
        plugin = self._require_plugin(route_id)
        with route_span(self._tracer, "disconnect", route_id, plugin.platform):
            await self.state.set_state(route_id, RouteState.DISCONNECTING)
            try:
                await plugin.disconnect()
            except Exception as exc:
                await self.state.set_error(route_id, str(exc) or type(exc).__name__)
                raise
            await self.state.set_state(route_id, RouteState.DISCONNECTED)
            await self._persist_route_state(route_id, RouteState.DISCONNECTED)
            await self.reconnection.cancel(route_id)
        logger.info("Route %s disconnected", route_id)

    async def _persist_route_state(self, route_id: str, state: RouteState) -> None:
        connected_at = utcnow() if state == RouteState.CONNECTED else None
        async with self.storage.write() as session:
            await RouteRepository(session).set_state(route_id, state.value, connected_at)

    # -----------------------------------------------------------------------
    # Reconnection
    # -----------------------------------------------------------------------

    async def configure_reconnection(self, route_id: str, config: ReconnectionConfig) -> None:
        await self.reconnection.configure(route_id, config)

    async def cancel_reconnection(self, route_id: str) -> bool:
        return await self.reconnection.cancel(route_id)

    async def _schedule_reconnection(self, route_id: str) -> None:
        try:
            delay = await self.reconnection.trigger_reconnection(route_id)
        except ReconnectionError as exc:
            logger.warning("Not scheduling reconnection for route %s: %s", route_id, exc)
            return

        await self.state.set_state(route_id, RouteState.RECONNECTING)
        task = asyncio.create_task(
            self._reconnection_loop(route_id, delay),
            name=f"reconnect-{route_id}",
        )
        await self.reconnection.attach_task(route_id, task)

    async def _reconnection_loop(self, route_id: str, delay: float) -> None:
        """One task per route: wait, try, and re-arm while budget remains."""
        while True:
            await asyncio.sleep(delay)
            plugin = self.plugins.get(route_id)
            if plugin is None:
                return

            try:
                await self._connect(route_id, plugin)
            except Exception as exc:
                await self.reconnection.complete_reconnection(route_id, success=False)
                if not await self.reconnection.can_reconnect(route_id):
                    logger.warning(
                        "Reconnection budget exhausted for route %s: %s", route_id, exc
                    )
                    return
                try:
                    delay = await self.reconnection.trigger_reconnection(route_id)
                except ReconnectionError as trigger_exc:
                    logger.warning("Stopping reconnection for route %s: %s", route_id, trigger_exc)
                    return
                await self.state.set_state(route_id, RouteState.RECONNECTING)
                continue

            await self.reconnection.complete_reconnection(route_id, success=True)
            logger.info("Route %s reconnected", route_id)
            return

    # -----------------------------------------------------------------------
    # Messaging
    # -----------------------------------------------------------------------

    async def _require_connected(self, route_id: str) -> RoutePlugin:
        plugin = self._require_plugin(route_id)
        if not await self.state.is_connected(route_id):
            raise RouteNotConnected(route_id)
        return plugin

    async def send_message(
        self,
        route_id: str,
        conversation_id: str,
        text: str,
        reply_to_message_id: Optional[str] = None,
        policy: RetryPolicy | None = None,
    ) -> Message:
        plugin = await self._require_connected(route_id)
        with route_span(self._tracer, "send_message", route_id, plugin.platform):
            return await self.retry.execute_with_retry(
                f"send_message_{route_id}_{uuid.uuid4()}",
                policy or self.config.retry_policy,
                lambda: plugin.send_message(conversation_id, text, reply_to_message_id),
            )

    async def send_media(
        self,
        route_id: str,
        conversation_id: str,
        media: bytes,
        media_type: MessageContentType,
        caption: Optional[str] = None,
        policy: RetryPolicy | None = None,
    ) -> Message:
        plugin = await self._require_connected(route_id)
        with route_span(self._tracer, "send_media", route_id, plugin.platform):
            return await self.retry.execute_with_retry(
                f"send_media_{route_id}_{uuid.uuid4()}",
                policy or self.config.retry_policy,
                lambda: plugin.send_media(conversation_id, media, media_type, caption),
            )

    async def load_older_messages(
        self,
        route_id: str,
        conversation_id: str,
        before_message_id: Optional[str] = None,
        limit: int = 50,
    ) -> list[Message]:
        plugin = await self._require_connected(route_id)
        return await plugin.load_older_messages(conversation_id, before_message_id, limit)

    # -----------------------------------------------------------------------
    # Stored conversations / messages
    # -----------------------------------------------------------------------

    async def get_conversations(self, route_id: Optional[str] = None) -> list[Conversation]:
        async with self.storage.read() as session:
            repo = ConversationRepository(session)
            if route_id is None:
                return await repo.list_all()
            return await repo.list_for_route(route_id)

    async def get_messages(self, conversation_id: str, limit: int = 100) -> list[Message]:
        async with self.storage.read() as session:
            return await MessageRepository(session).list_for_conversation(conversation_id, limit)

    async def store_conversation(self, conversation: Conversation) -> None:
        async with self.storage.write() as session:
            await ConversationRepository(session).save(conversation)

    async def store_message(self, message: Message) -> None:
        async with self.storage.write() as session:
            await MessageRepository(session).save(message)

    # -----------------------------------------------------------------------
    # Event queue
    # -----------------------------------------------------------------------

    async def queue_event(self, event: Event) -> None:
        await self.events.enqueue(event)

    async def process_queued_events(self, route_id: str) -> int:
        return await self.events.process_events(route_id)

    async def get_queue_size(self, route_id: str) -> int:
        return await self.events.get_queue_size(route_id)

    async def get_total_queue_size(self) -> int:
        return await self.events.get_total_queue_size()

    def register_event_handler(self, handler: EventHandler) -> None:
        """Run handler for every replayed event, after the owning plugin."""
        self.events.register_processing_callback(handler)

    async def _deliver_to_route(self, event: Event) -> None:
        plugin = self.plugins.get(event.route_id)
        if isinstance(plugin, EventConsumer):
            await plugin.handle_queued_event(event)

    # -----------------------------------------------------------------------
    # State
    # -----------------------------------------------------------------------

    async def get_route_state(self, route_id: str) -> RouteState:
        return await self.state.get_state(route_id)

    async def get_route_error(self, route_id: str) -> Optional[str]:
        return await self.state.get_error(route_id)

    async def is_route_connected(self, route_id: str) -> bool:
        return await self.state.is_connected(route_id)

    async def subscribe_state_changes(self, route_id: str) -> StateSubscription:
        return await self.state.subscribe(route_id)

    # -----------------------------------------------------------------------
    # Maintenance
    # -----------------------------------------------------------------------

    async def cleanup(self) -> int:
        """Purge processed events past retention and compact the database."""
        deleted = await self.events.cleanup_old_events(self.config.events.retention_seconds)
        await self.storage.vacuum()
        return deleted
