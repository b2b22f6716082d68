"""
Async database connection and session management for poll storage.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

logger = logging.getLogger(__name__)


def _async_url(database_url: str) -> str:
    """
    Pick an async driver for plain Postgres URLs.

    Managed Postgres providers hand out ``postgres://`` or
    ``postgresql://`` URLs; SQLAlchemy's asyncio extension needs the driver
    spelled out.
    """
    if database_url.startswith("postgres://"):
        return "postgresql+asyncpg://" + database_url[len("postgres://"):]
    if database_url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + database_url[len("postgresql://"):]
    return database_url


class Database:
    """One async engine plus its session factory."""

    def __init__(self, database_url: str, **engine_kwargs: Any):
        """
        Args:
            database_url: SQLAlchemy URL of the poll store
            engine_kwargs: Extra arguments for create_async_engine
        """
        self.engine: AsyncEngine = create_async_engine(_async_url(database_url), **engine_kwargs)
        self._sessionmaker = async_sessionmaker(self.engine, expire_on_commit=False, class_=AsyncSession)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Context manager for a database session.

        Commits on success and rolls back on errors.

        Usage:
            async with database.session() as db:
                # Use db session
                pass
        """
        db = self._sessionmaker()
        try:
            yield db
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        finally:
            await db.close()

    async def init_db(self):
        """
        Initialize the database by creating all tables.
        """
        from sportrays.db_models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Poll tables ready")

    async def dispose(self):
        await self.engine.dispose()
