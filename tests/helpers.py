"""Shared fakes for the RouteKit tests."""
import uuid
from typing import Optional

from routekit.config import RouteKitConfig, StorageConfig, sqlite_url
from routekit.models.schemas import Event, Message, MessageStatus
from routekit.plugins.base import EventConsumer, RoutePlugin
from routekit.resilience import ReconnectionConfig, RetryPolicy


def make_config(tmp_path, **overrides) -> RouteKitConfig:
    """Config on a file-backed SQLite db with near-zero delays."""
    values = {
        "storage": StorageConfig(database_url=sqlite_url(tmp_path / "routekit.db")),
        "retry_policy": RetryPolicy(max_attempts=3, initial_delay=0.001, max_delay=0.001),
        "reconnection": ReconnectionConfig(max_attempts=3, initial_delay=0.01, max_delay=0.01),
    }
    values.update(overrides)
    return RouteKitConfig(**values)


class FakeRoute(RoutePlugin):
    """In-memory route whose connect fails a configurable number of times."""

    platform = "fake"
    display_name = "Fake Chat"

    def __init__(self, route_id: str, connect_failures: int = 0, fail_forever: bool = False):
        super().__init__(route_id)
        self.connect_failures = connect_failures
        self.fail_forever = fail_forever
        self.connect_calls = 0
        self.disconnect_error: Optional[Exception] = None
        self.connected = False
        self.sent: list[Message] = []

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.fail_forever or self.connect_calls <= self.connect_failures:
            raise ConnectionError(f"{self.route_id} unreachable")
        self.connected = True

    async def disconnect(self) -> None:
        if self.disconnect_error is not None:
            raise self.disconnect_error
        self.connected = False

    async def is_connected(self) -> bool:
        return self.connected

    async def send_message(self, conversation_id, text, reply_to_message_id=None) -> Message:
        message = Message(
            id=str(uuid.uuid4()),
            conversation_id=conversation_id,
            sender_id="me",
            text=text,
            status=MessageStatus.SENT,
            reply_to_message_id=reply_to_message_id,
        )
        self.sent.append(message)
        return message

    async def send_media(self, conversation_id, media, media_type, caption=None) -> Message:
        message = Message(
            id=str(uuid.uuid4()),
            conversation_id=conversation_id,
            sender_id="me",
            content_type=media_type,
            text=caption,
            status=MessageStatus.SENT,
            attachment_metadata={"size": str(len(media))},
        )
        self.sent.append(message)
        return message

    async def load_older_messages(self, conversation_id, before_message_id=None, limit=50):
        return self.sent[-limit:]


class ConsumerRoute(EventConsumer, FakeRoute):
    """FakeRoute that records the queued events replayed to it."""

    platform = "consumer"

    def __init__(self, route_id: str, **kwargs):
        super().__init__(route_id, **kwargs)
        self.replayed: list[Event] = []

    async def handle_queued_event(self, event: Event) -> None:
        self.replayed.append(event)


