"""Async SQLAlchemy storage manager.

One StorageManager per RouteKit instance owns the engine and session factory:
- read(): session for queries
- write(): transactional session (commit on success, rollback on error)
- init_db(): create tables from models (no migrations)
- vacuum() / close(): maintenance and shutdown

SQLite (aiosqlite) is the default backend; any async SQLAlchemy URL works.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from routekit.config import StorageConfig
from routekit.errors import StorageError

logger = logging.getLogger(__name__)


class StorageManager:
    """Engine + session lifecycle for the RouteKit store."""

    def __init__(self, config: StorageConfig | None = None):
        self.config = config or StorageConfig()
        self.engine: AsyncEngine = create_async_engine(
            self.config.database_url,
            echo=self.config.echo,
            **self._pool_options(),
        )
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @property
    def is_sqlite(self) -> bool:
        return self.engine.dialect.name == "sqlite"

    def _pool_options(self) -> dict:
        if self.config.database_url.startswith("sqlite"):
            return {}
        return {
            "pool_size": self.config.pool_size,
            "max_overflow": self.config.max_overflow,
            "pool_pre_ping": True,
        }

    # -----------------------------------------------------------------------
    # Sessions
    # -----------------------------------------------------------------------

    @asynccontextmanager
    async def read(self) -> AsyncGenerator[AsyncSession, None]:
        """Session for read-only queries."""
        async with self.session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as exc:
                raise StorageError(f"Failed to read from database: {exc}") from exc

    @asynccontextmanager
    async def write(self) -> AsyncGenerator[AsyncSession, None]:
        """Transactional session with automatic commit/rollback.

        Usage::

            async with storage.write() as session:
                session.add(record)
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise StorageError(f"Failed to write to database: {exc}") from exc
            except Exception:
                await session.rollback()
                raise

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------

    async def init_db(self) -> None:
        """Create tables from models."""
        from routekit.models.base import Base
        import routekit.models.db_models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.debug("Database initialised at %s", self.engine.url)

    async def vacuum(self) -> None:
        """Reclaim space. VACUUM cannot run inside a transaction."""
        if not self.is_sqlite:
            return
        async with self.engine.connect() as conn:
            conn = await conn.execution_options(isolation_level="AUTOCOMMIT")
            await conn.execute(text("VACUUM"))

    async def close(self) -> None:
        """Dispose of the connection pool on shutdown."""
        await self.engine.dispose()
