"""Pydantic schemas for routes, conversations, messages and queued events."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from routekit.models.base import utcnow


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class EventType(str, Enum):
    MESSAGE_RECEIVED = "MESSAGE_RECEIVED"
    REACTION_ADDED = "REACTION_ADDED"
    REACTION_REMOVED = "REACTION_REMOVED"
    TYPING_INDICATOR = "TYPING_INDICATOR"
    MESSAGE_DELETED = "MESSAGE_DELETED"
    MESSAGE_UPDATED = "MESSAGE_UPDATED"
    CALL_STARTED = "CALL_STARTED"
    CALL_ENDED = "CALL_ENDED"
    CONVERSATION_CREATED = "CONVERSATION_CREATED"
    CONVERSATION_UPDATED = "CONVERSATION_UPDATED"


class MessageContentType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    FILE = "file"
    LOCATION = "location"
    CONTACT = "contact"
    STICKER = "sticker"


class MessageStatus(str, Enum):
    SENDING = "sending"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"


class HistorySyncMode(str, Enum):
    NONE = "none"
    ON_DEMAND = "on_demand"
    FULL = "full"


# ---------------------------------------------------------------------------
# Domain models
# ---------------------------------------------------------------------------

def _to_utc(value: datetime | None) -> datetime | None:
    """Stored timestamps are UTC; naive input is taken to be UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Event(BaseModel):
    """Something that happened on a route, queued until it can be delivered."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    route_id: str
    type: EventType
    timestamp: datetime = Field(default_factory=utcnow)
    payload: bytes = b""
    processed: bool = False

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, value: datetime) -> datetime:
        return _to_utc(value)


class Message(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    content_type: MessageContentType = MessageContentType.TEXT
    text: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)
    status: MessageStatus = MessageStatus.SENDING
    reply_to_message_id: Optional[str] = None
    reply_to_preview: Optional[str] = None
    platform_message_id: Optional[str] = None
    attachment_metadata: Optional[dict[str, str]] = None

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, value: datetime) -> datetime:
        return _to_utc(value)


class Conversation(BaseModel):
    id: str
    route_id: str
    display_name: str
    avatar_url: Optional[str] = None
    last_message_text: Optional[str] = None
    last_message_timestamp: Optional[datetime] = None
    unread_count: int = Field(0, ge=0)
    is_group: bool = False
    participant_ids: list[str] = Field(default_factory=list)
    metadata: dict[str, str] = Field(default_factory=dict)

    @field_validator("last_message_timestamp")
    @classmethod
    def normalize_timestamp(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _to_utc(value)


class RouteInfo(BaseModel):
    id: str
    platform: str
    display_name: str
    state: str = "DISCONNECTED"
    metadata: dict[str, str] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    last_connected_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# API request / response models
# ---------------------------------------------------------------------------

class SendMessageRequest(BaseModel):
    conversation_id: str = Field(..., min_length=1)
    text: str
    reply_to_message_id: Optional[str] = None


class RouteStateResponse(BaseModel):
    route_id: str
    state: str
    error: Optional[str] = None
    connected: bool = False


class QueueSizeResponse(BaseModel):
    route_id: str
    queued: int
    total_queued: int
