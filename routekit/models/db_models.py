"""SQLAlchemy models for the RouteKit store.

Tables:
- routes: one row per registered route
- conversations / messages: chat history cached from plugins
- events: the durable event queue (processed flag flips once)
- session_storage: opaque per-route values such as credentials

Each model converts to its pydantic schema via to_schema().
"""

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, LargeBinary, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from routekit.models.base import Base, TimestampMixin, as_utc, utcnow
from routekit.models.schemas import (
    Conversation,
    Event,
    EventType,
    Message,
    MessageContentType,
    MessageStatus,
    RouteInfo,
)


class RouteRecord(TimestampMixin, Base):
    """A registered route."""

    __tablename__ = "routes"

    id: Mapped[str] = mapped_column(String(200), primary_key=True)
    platform: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    state: Mapped[str] = mapped_column(String(20), nullable=False, default="DISCONNECTED")
    metadata_json: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)
    last_connected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def to_schema(self) -> RouteInfo:
        return RouteInfo(
            id=self.id,
            platform=self.platform,
            display_name=self.display_name,
            state=self.state,
            metadata=dict(self.metadata_json or {}),
            created_at=as_utc(self.created_at),
            last_connected_at=as_utc(self.last_connected_at),
        )

    def to_dict(self) -> dict:
        return self.to_schema().model_dump(mode="json")


class ConversationRecord(Base):
    """A conversation on a route."""

    __tablename__ = "conversations"

    id: Mapped[str] = mapped_column(String(200), primary_key=True)
    route_id: Mapped[str] = mapped_column(
        String(200), ForeignKey("routes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    last_message_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_message_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    unread_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_group: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    participant_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    metadata_json: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)

    @classmethod
    def from_schema(cls, conversation: Conversation) -> "ConversationRecord":
        return cls(
            id=conversation.id,
            route_id=conversation.route_id,
            display_name=conversation.display_name,
            avatar_url=conversation.avatar_url,
            last_message_text=conversation.last_message_text,
            last_message_timestamp=conversation.last_message_timestamp,
            unread_count=conversation.unread_count,
            is_group=conversation.is_group,
            participant_ids=list(conversation.participant_ids),
            metadata_json=dict(conversation.metadata),
        )

    def to_schema(self) -> Conversation:
        return Conversation(
            id=self.id,
            route_id=self.route_id,
            display_name=self.display_name,
            avatar_url=self.avatar_url,
            last_message_text=self.last_message_text,
            last_message_timestamp=as_utc(self.last_message_timestamp),
            unread_count=self.unread_count,
            is_group=self.is_group,
            participant_ids=list(self.participant_ids or []),
            metadata=dict(self.metadata_json or {}),
        )


class MessageRecord(Base):
    """A message in a conversation."""

    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(200), primary_key=True)
    conversation_id: Mapped[str] = mapped_column(
        String(200), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender_id: Mapped[str] = mapped_column(String(200), nullable=False)
    content_type: Mapped[str] = mapped_column(String(20), nullable=False, default="text")
    text: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="sending")
    reply_to_message_id: Mapped[str | None] = mapped_column(String(200), nullable=True)
    reply_to_preview: Mapped[str | None] = mapped_column(Text, nullable=True)
    platform_message_id: Mapped[str | None] = mapped_column(String(200), nullable=True)
    attachment_metadata: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    @classmethod
    def from_schema(cls, message: Message) -> "MessageRecord":
        return cls(
            id=message.id,
            conversation_id=message.conversation_id,
            sender_id=message.sender_id,
            content_type=message.content_type.value,
            text=message.text,
            timestamp=message.timestamp,
            status=message.status.value,
            reply_to_message_id=message.reply_to_message_id,
            reply_to_preview=message.reply_to_preview,
            platform_message_id=message.platform_message_id,
            attachment_metadata=message.attachment_metadata,
        )

    def to_schema(self) -> Message:
        return Message(
            id=self.id,
            conversation_id=self.conversation_id,
            sender_id=self.sender_id,
            content_type=MessageContentType(self.content_type),
            text=self.text,
            timestamp=as_utc(self.timestamp),
            status=MessageStatus(self.status),
            reply_to_message_id=self.reply_to_message_id,
            reply_to_preview=self.reply_to_preview,
            platform_message_id=self.platform_message_id,
            attachment_metadata=self.attachment_metadata,
        )


class EventRecord(Base):
    """A queued event. Rows with processed=False make up the replay queue."""

    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    route_id: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(40), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    payload: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)

    @classmethod
    def from_schema(cls, event: Event) -> "EventRecord":
        return cls(
            id=event.id,
            route_id=event.route_id,
            type=event.type.value,
            timestamp=event.timestamp,
            payload=event.payload,
            processed=event.processed,
        )

    def to_schema(self) -> Event:
        return Event(
            id=self.id,
            route_id=self.route_id,
            type=EventType(self.type),
            timestamp=as_utc(self.timestamp),
            payload=self.payload,
            processed=self.processed,
        )


class SessionRecord(Base):
    """Opaque per-route value (tokens, session blobs) with optional expiry."""

    __tablename__ = "session_storage"

    key: Mapped[str] = mapped_column(String(300), primary_key=True)
    route_id: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    value: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    @property
    def is_expired(self) -> bool:
        expires_at = as_utc(self.expires_at)
        return expires_at is not None and utcnow() >= expires_at
