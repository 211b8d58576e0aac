"""Repositories over the RouteKit store."""
from routekit.storage.repositories import (
    ConversationRepository,
    EventStore,
    MessageRepository,
    RouteRepository,
    SessionRepository,
)
from routekit.storage.repository import BaseRepository

__all__ = [
    "BaseRepository",
    "ConversationRepository",
    "EventStore",
    "MessageRepository",
    "RouteRepository",
    "SessionRepository",
]
