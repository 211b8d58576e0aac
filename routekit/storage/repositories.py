"""RouteKit repositories — route, conversation, message and event queries.

EventStore is the persistence collaborator of the event queue. Each of its
operations opens its own write/read transaction on the StorageManager, so
concurrent enqueues from different routes never interleave inside a row.
"""

from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from routekit.database import StorageManager
from routekit.models.db_models import (
    ConversationRecord,
    EventRecord,
    MessageRecord,
    RouteRecord,
    SessionRecord,
)
from routekit.models.schemas import Conversation, Event, Message
from routekit.storage.repository import BaseRepository


# ---------------------------------------------------------------------------
# Route repository
# ---------------------------------------------------------------------------

class RouteRepository(BaseRepository[RouteRecord]):
    """Registered routes."""

    model = RouteRecord

    async def set_state(
        self, route_id: str, state: str, connected_at: datetime | None = None
    ) -> bool:
        values: dict = {"state": state}
        if connected_at is not None:
            values["last_connected_at"] = connected_at
        result = await self.session.execute(
            update(RouteRecord).where(RouteRecord.id == route_id).values(**values)
        )
        return result.rowcount > 0


# ---------------------------------------------------------------------------
# Conversation / message repositories
# ---------------------------------------------------------------------------

class ConversationRepository(BaseRepository[ConversationRecord]):
    """Conversations cached from route plugins."""

    model = ConversationRecord

    async def list_all(self) -> list[Conversation]:
        result = await self.session.execute(select(ConversationRecord))
        return [row.to_schema() for row in result.scalars().all()]

    async def list_for_route(self, route_id: str) -> list[Conversation]:
        """Conversations of one route, most recently active first."""
        stmt = (
            select(ConversationRecord)
            .where(ConversationRecord.route_id == route_id)
            .order_by(ConversationRecord.last_message_timestamp.desc())
        )
        result = await self.session.execute(stmt)
        return [row.to_schema() for row in result.scalars().all()]

    async def save(self, conversation: Conversation) -> None:
        await self.upsert(ConversationRecord.from_schema(conversation))


class MessageRepository(BaseRepository[MessageRecord]):
    """Messages cached from route plugins."""

    model = MessageRecord

    async def list_for_conversation(
        self, conversation_id: str, limit: int = 100
    ) -> list[Message]:
        """Newest messages first."""
        stmt = (
            select(MessageRecord)
            .where(MessageRecord.conversation_id == conversation_id)
            .order_by(MessageRecord.timestamp.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [row.to_schema() for row in result.scalars().all()]

    async def save(self, message: Message) -> None:
        await self.upsert(MessageRecord.from_schema(message))


class SessionRepository(BaseRepository[SessionRecord]):
    """Opaque per-route values."""

    model = SessionRecord

    async def delete_for_route(self, route_id: str) -> int:
        result = await self.session.execute(
            delete(SessionRecord).where(SessionRecord.route_id == route_id)
        )
        return result.rowcount or 0


# ---------------------------------------------------------------------------
# Event store
# ---------------------------------------------------------------------------

class EventStore:
    """Durable log of queued events."""

    def __init__(self, storage: StorageManager):
        self.storage = storage

    async def append_event(self, event: Event) -> None:
        async with self.storage.write() as session:
            session.add(EventRecord.from_schema(event))

    async def mark_processed(self, event_id: str) -> bool:
        async with self.storage.write() as session:
            result = await session.execute(
                update(EventRecord).where(EventRecord.id == event_id).values(processed=True)
            )
            return result.rowcount > 0

    async def query_unprocessed(self) -> list[Event]:
        """Unprocessed events, oldest first."""
        async with self.storage.read() as session:
            return await self._unprocessed(session)

    async def delete_events(self, route_id: str) -> int:
        async with self.storage.write() as session:
            result = await session.execute(
                delete(EventRecord).where(EventRecord.route_id == route_id)
            )
            return result.rowcount or 0

    async def delete_processed_older_than(self, cutoff: datetime) -> int:
        async with self.storage.write() as session:
            result = await session.execute(
                delete(EventRecord).where(
                    EventRecord.processed.is_(True),
                    EventRecord.timestamp < cutoff,
                )
            )
            return result.rowcount or 0

    async def get(self, event_id: str) -> Event | None:
        async with self.storage.read() as session:
            record = await session.get(EventRecord, event_id)
            return record.to_schema() if record else None

    @staticmethod
    async def _unprocessed(session: AsyncSession) -> list[Event]:
        stmt = (
            select(EventRecord)
            .where(EventRecord.processed.is_(False))
            .order_by(EventRecord.timestamp)
        )
        result = await session.execute(stmt)
        return [row.to_schema() for row in result.scalars().all()]
