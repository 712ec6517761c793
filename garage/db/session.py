"""
Async database handle and request-scoped sessions.
The Database is created and disposed by the application lifespan, never at import.
One session per request: commit on success, rollback on error.
"""

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

logger = logging.getLogger(__name__)


class Database:
    """Owns the engine (connection pool) and the session factory."""

    def __init__(self, url: str, *, echo: bool = False):
        engine_kwargs = {"echo": echo, "pool_pre_ping": True}
        if not url.startswith("sqlite"):
            engine_kwargs.update(pool_size=10, max_overflow=20)
        self.engine = create_async_engine(url, **engine_kwargs)
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def ping(self) -> None:
        """Fail fast when the database is unreachable."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database connections closed")


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session per request. Rollback on error, close on exit."""
    database: Database = request.app.state.db
    async with database.session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# Type alias for FastAPI dependency injection.
# scope="function": commit (or rollback) runs before the response is sent,
# so a commit failure still reaches the fault handlers.
DbSession = Annotated[AsyncSession, Depends(get_db, scope="function")]
