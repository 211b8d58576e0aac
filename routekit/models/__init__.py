"""Domain schemas and persisted records."""
from routekit.models.base import Base, TimestampMixin, as_utc, utcnow
from routekit.models.db_models import (
    ConversationRecord,
    EventRecord,
    MessageRecord,
    RouteRecord,
    SessionRecord,
)
from routekit.models.schemas import (
    Conversation,
    Event,
    EventType,
    HistorySyncMode,
    Message,
    MessageContentType,
    MessageStatus,
    QueueSizeResponse,
    RouteInfo,
    RouteStateResponse,
    SendMessageRequest,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "as_utc",
    "utcnow",
    "ConversationRecord",
    "EventRecord",
    "MessageRecord",
    "RouteRecord",
    "SessionRecord",
    "Conversation",
    "Event",
    "EventType",
    "HistorySyncMode",
    "Message",
    "MessageContentType",
    "MessageStatus",
    "QueueSizeResponse",
    "RouteInfo",
    "RouteStateResponse",
    "SendMessageRequest",
]
