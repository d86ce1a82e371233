"""Base repository with shared lookups."""

from typing import Generic, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from taskbridge.db.base import Base

T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """Base repository bound to one ORM model.

    Transaction control is left to the caller; repositories never commit.

    Args:
        session: AsyncSession for database operations.
        model_class: The ORM model class this repository manages.
    """

    def __init__(self, session: AsyncSession, model_class: Type[T]) -> None:
        self._session = session
        self._model_class = model_class

    async def get_by_id(self, id: UUID) -> Optional[T]:
        """Get a single record by primary key, or None."""
        return await self._session.get(self._model_class, id)
