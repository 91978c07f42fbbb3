"""Base repository with common operations."""
from typing import Generic, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from vault_worker.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Generic base repository for common database operations."""

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """Initialize repository.

        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    async def commit(self) -> None:
        """Commit the current unit of work."""
        await self.session.commit()

    async def rollback(self) -> None:
        """Discard the current unit of work after a failed statement."""
        await self.session.rollback()
