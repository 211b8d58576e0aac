"""
RouteKit Route Plugin Contract.

Every chat platform integration (Discord, WhatsApp, Telegram, ...) inherits
from RoutePlugin. The required method set is fixed; everything a platform
may or may not offer lives in an optional capability mixin whose defaults
are explicit no-ops or raise UnsupportedOperation:

- AuthCapability: authenticate / is_authenticated / sign_out
- ConversationCapability: list, fetch and create conversations
- MessageEditingCapability: delete / edit messages
- ReactionCapability: add / remove reactions
- TypingCapability: typing indicators
- CallCapability: voice / video calls
- HistorySyncCapability: history sync mode and full sync
- MetadataCapability: route metadata
- EventConsumer: receives queued events replayed on reconnect

The facade treats any exception raised by a plugin uniformly for retry and
reconnection purposes and re-raises it unchanged.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional

from routekit.errors import UnsupportedOperation
from routekit.models.schemas import (
    Conversation,
    Event,
    HistorySyncMode,
    Message,
    MessageContentType,
)


# ---------------------------------------------------------------------------
# RoutePlugin
# ---------------------------------------------------------------------------

class RoutePlugin(ABC):
    """
    Base class for all route plugins.

    Subclasses must set:
        platform: str      — platform identifier ("discord", "whatsapp", ...)
        display_name: str  — human readable name (may be overridden per instance)
    """

    platform: str = ""
    display_name: str = ""

    def __init__(self, route_id: str, display_name: str | None = None):
        self.route_id = route_id
        if display_name is not None:
            self.display_name = display_name

    # --- Connection ---

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection to the platform."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection to the platform."""

    @abstractmethod
    async def is_connected(self) -> bool:
        """Live connectivity as seen by the plugin."""

    # --- Messaging ---

    @abstractmethod
    async def send_message(
        self,
        conversation_id: str,
        text: str,
        reply_to_message_id: Optional[str] = None,
    ) -> Message:
        """Send a text message and return it as the platform stored it."""

    @abstractmethod
    async def send_media(
        self,
        conversation_id: str,
        media: bytes,
        media_type: MessageContentType,
        caption: Optional[str] = None,
    ) -> Message:
        """Send an image, video, audio clip or file."""

    @abstractmethod
    async def load_older_messages(
        self,
        conversation_id: str,
        before_message_id: Optional[str] = None,
        limit: int = 50,
    ) -> list[Message]:
        """Page backwards through a conversation's history."""

    def _unsupported(self, operation: str) -> UnsupportedOperation:
        return UnsupportedOperation(self.platform or type(self).__name__, operation)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} route_id={self.route_id!r} platform={self.platform!r}>"


# ---------------------------------------------------------------------------
# Optional capabilities
# ---------------------------------------------------------------------------

class AuthCapability:
    async def authenticate(self) -> dict[str, str]:
        """Return authentication data (token, session id, ...)."""
        return {}

    async def is_authenticated(self) -> bool:
        return True

    async def sign_out(self) -> None:
        return None


class ConversationCapability:
    async def get_conversations(self) -> list[Conversation]:
        return []

    async def get_conversation(self, conversation_id: str) -> Conversation:
        raise self._unsupported("get_conversation")

    async def create_conversation(
        self, participant_ids: list[str], name: Optional[str] = None
    ) -> Conversation:
        raise self._unsupported("create_conversation")


class MessageEditingCapability:
    async def delete_message(self, message_id: str) -> None:
        raise self._unsupported("delete_message")

    async def edit_message(self, message_id: str, new_text: str) -> None:
        raise self._unsupported("edit_message")


class ReactionCapability:
    async def add_reaction(self, message_id: str, emoji: str) -> None:
        raise self._unsupported("add_reaction")

    async def remove_reaction(self, message_id: str, emoji: str) -> None:
        raise self._unsupported("remove_reaction")


class TypingCapability:
    async def send_typing_indicator(self, conversation_id: str) -> None:
        return None


class CallCapability:
    async def start_voice_call(self, conversation_id: str) -> dict[str, str]:
        raise self._unsupported("start_voice_call")

    async def start_video_call(self, conversation_id: str) -> dict[str, str]:
        raise self._unsupported("start_video_call")

    async def end_call(self) -> None:
        return None


class HistorySyncCapability:
    async def get_history_sync_mode(self) -> HistorySyncMode:
        return HistorySyncMode.ON_DEMAND

    async def sync_full_history(self) -> None:
        return None


class MetadataCapability:
    _metadata: dict[str, str]

    async def get_metadata(self) -> dict[str, str]:
        return dict(getattr(self, "_metadata", {}))

    async def update_metadata(self, metadata: dict[str, str]) -> None:
        self._metadata = {**getattr(self, "_metadata", {}), **metadata}


class EventConsumer:
    async def handle_queued_event(self, event: Event) -> None:
        """Called for each event of this route replayed from the queue."""
        return None
