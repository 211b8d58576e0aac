"""Async repository pattern for the RouteKit store.

Provides a generic base repository with CRUD operations bound to one
AsyncSession. Concrete repositories subclass this to add domain queries.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from routekit.models.base import Base

# ---------------------------------------------------------------------------
# Type variable for model classes
# ---------------------------------------------------------------------------

ModelT = TypeVar("ModelT", bound=Base)


# ---------------------------------------------------------------------------
# Base repository
# ---------------------------------------------------------------------------

class BaseRepository(Generic[ModelT]):
    """Generic async repository with CRUD by primary key.

    Subclass and set `model` to your SQLAlchemy model::

        class RouteRepository(BaseRepository[RouteRecord]):
            model = RouteRecord
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, item_id: Any) -> ModelT | None:
        return await self.session.get(self.model, item_id)

    async def list(self, limit: int | None = None, **filters: Any) -> list[ModelT]:
        """List rows matching equality filters."""
        stmt = select(self.model)
        for col_name, value in filters.items():
            if hasattr(self.model, col_name) and value is not None:
                stmt = stmt.where(getattr(self.model, col_name) == value)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count(self, **filters: Any) -> int:
        stmt = select(func.count()).select_from(self.model)
        for col_name, value in filters.items():
            if hasattr(self.model, col_name) and value is not None:
                stmt = stmt.where(getattr(self.model, col_name) == value)
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def add(self, item: ModelT) -> ModelT:
        self.session.add(item)
        await self.session.flush()
        return item

    async def upsert(self, item: ModelT) -> ModelT:
        """Insert or replace by primary key."""
        merged = await self.session.merge(item)
        await self.session.flush()
        return merged

    async def update(self, item_id: Any, data: dict[str, Any]) -> ModelT | None:
        """Update an existing row. Returns None if not found."""
        item = await self.get(item_id)
        if item is None:
            return None
        for key, value in data.items():
            if hasattr(item, key) and key != "id":
                setattr(item, key, value)
        await self.session.flush()
        return item

    async def delete(self, item_id: Any) -> bool:
        """Delete a row. Returns True if deleted, False if not found."""
        item = await self.get(item_id)
        if item is None:
            return False
        await self.session.delete(item)
        await self.session.flush()
        return True
