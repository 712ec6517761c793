"""
Base repository - generic persistence helpers shared by the model repositories.
Queries stay in one place for optimization and reuse.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from garage.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Generic async repository. Subclasses define model-specific methods."""

    def __init__(self, session: AsyncSession, model: type[ModelType]):
        self.session = session
        self.model = model

    async def get_by_id(self, id: Any) -> ModelType | None:
        """Fetch single entity by primary key, no scoping."""
        result = await self.session.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def add(self, entity: ModelType) -> ModelType:
        """Persist new entity. Caller commits session."""
        self.session.add(entity)
        await self.session.flush()  # Get ID and defaults without committing
        await self.session.refresh(entity)
        return entity

    async def remove(self, entity: ModelType) -> None:
        """Remove entity from DB."""
        await self.session.delete(entity)
        await self.session.flush()

    async def commit(self) -> None:
        """Make pending changes durable before side effects outside the DB."""
        await self.session.commit()
