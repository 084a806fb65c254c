"""
Base Repository

Shared lookups for repositories keyed by a UUID primary key.
Writes are left to the services, which own the transaction.
"""

from typing import Any, Generic, List, Optional, Sequence, Type, TypeVar
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from quizroom.db.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Lookups by id and counting, bound to one model and session."""

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    async def get_by_id(self, id: UUID) -> Optional[ModelType]:
        result = await self.db.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

    async def get_by_ids(self, ids: Sequence[UUID]) -> List[ModelType]:
        """Rows for the given ids; unknown ids are simply absent."""
        if not ids:
            return []
        result = await self.db.execute(
            select(self.model).where(self.model.id.in_(list(ids)))
        )
        return list(result.scalars().all())

    async def count_where(self, *criteria: Any) -> int:
        result = await self.db.execute(
            select(func.count(self.model.id)).where(*criteria)
        )
        return result.scalar() or 0
