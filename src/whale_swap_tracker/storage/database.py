"""Async engine and session lifecycle for the storage layer.

Production runs on PostgreSQL through asyncpg. Tests point the same code at
SQLite through aiosqlite.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from whale_swap_tracker.storage.models import Base

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

_SYNC_POSTGRES_PREFIX = "postgresql://"
_ASYNC_POSTGRES_PREFIX = "postgresql+asyncpg://"


def to_async_url(database_url: str) -> str:
    """Swap a plain PostgreSQL URL for its asyncpg form. Other URLs pass through."""
    if database_url.startswith(_SYNC_POSTGRES_PREFIX):
        logger.debug("Using asyncpg driver for %s URL", _SYNC_POSTGRES_PREFIX)
        return _ASYNC_POSTGRES_PREFIX + database_url[len(_SYNC_POSTGRES_PREFIX) :]
    return database_url


def create_async_db_engine(database_url: str, **kwargs: Any) -> AsyncEngine:
    """Build an AsyncEngine for `database_url`, upgrading sync PostgreSQL URLs."""
    return create_async_engine(to_async_url(database_url), **kwargs)


async def init_async_db(engine: AsyncEngine) -> None:
    """Create missing tables. Alembic owns migrations; this is for fresh installs and tests."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Created users, user_filters and unique_tokens tables if missing")


class DatabaseManager:
    """Lazily creates one engine and hands out unit-of-work sessions.

    Example:
        ```python
        db = DatabaseManager(settings.database.url)
        async with db.get_async_session() as session:
            await UserRepository(session).upsert("123456")
        await db.dispose_async()
        ```
    """

    def __init__(
        self,
        database_url: str,
        *,
        pool_size: int = 5,
        max_overflow: int = 10,
        echo: bool = False,
    ) -> None:
        self.database_url = database_url
        self._engine_options: dict[str, Any] = {"echo": echo}
        # SQLite's default pool rejects sizing options.
        if not database_url.startswith("sqlite"):
            self._engine_options.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=True,
            )
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = create_async_db_engine(self.database_url, **self._engine_options)
            self._sessions = async_sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._engine

    @asynccontextmanager
    async def get_async_session(self) -> AsyncIterator[AsyncSession]:
        """One unit of work: commit when the block exits cleanly, roll back otherwise."""
        engine = self.engine
        sessions = self._sessions or async_sessionmaker(bind=engine, expire_on_commit=False)
        async with sessions() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> bool:
        """True if the database answers a trivial query."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.warning("Database ping failed: %s", e)
            return False
        return True

    async def init_schema_async(self) -> None:
        await init_async_db(self.engine)

    async def dispose_async(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessions = None
        logger.debug("Database engine disposed")
