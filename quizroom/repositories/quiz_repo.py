"""
Quiz Repository

Data access layer for Quiz and Question models.
"""

from typing import List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update

from quizroom.repositories.base import BaseRepository
from quizroom.models.quiz import Quiz, QuizStatus
from quizroom.models.question import Question


class QuizRepository(BaseRepository[Quiz]):
    """Repository for Quiz model."""

    def __init__(self, db: AsyncSession):
        super().__init__(Quiz, db)

    async def get_by_room_code(self, room_code: str) -> Optional[Quiz]:
        result = await self.db.execute(
            select(self.model).where(self.model.room_code == room_code)
        )
        return result.scalar_one_or_none()

    async def room_code_exists(self, room_code: str) -> bool:
        return await self.count_where(self.model.room_code == room_code) > 0

    async def get_for_teacher(self, quiz_id: UUID, teacher_id: UUID) -> Optional[Quiz]:
        """Get a quiz only if it belongs to the teacher."""
        result = await self.db.execute(
            select(self.model).where(
                self.model.id == quiz_id,
                self.model.teacher_id == teacher_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_by_teacher(
        self,
        teacher_id: UUID,
        skip: int = 0,
        limit: int = 20
    ) -> List[Quiz]:
        stmt = (
            select(self.model)
            .where(self.model.teacher_id == teacher_id)
            .order_by(self.model.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_by_teacher(self, teacher_id: UUID) -> int:
        return await self.count_where(self.model.teacher_id == teacher_id)

    async def mark_finished(self, quiz_id: UUID) -> bool:
        """
        Conditionally flip a started quiz to finished.

        Safe to race: only the first caller matches the WHERE clause,
        later callers update nothing and are not treated as conflicts.
        """
        result = await self.db.execute(
            update(self.model)
            .where(
                self.model.id == quiz_id,
                self.model.status == QuizStatus.STARTED,
            )
            .values(status=QuizStatus.FINISHED, version=self.model.version + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0


class QuestionRepository(BaseRepository[Question]):
    """Repository for Question model."""

    def __init__(self, db: AsyncSession):
        super().__init__(Question, db)

    async def get_in_quiz(self, question_id: UUID, quiz_id: UUID) -> Optional[Question]:
        result = await self.db.execute(
            select(self.model).where(
                self.model.id == question_id,
                self.model.quiz_id == quiz_id,
            )
        )
        return result.scalar_one_or_none()

    async def next_display_order(self, quiz_id: UUID) -> int:
        result = await self.db.execute(
            select(func.max(self.model.display_order)).where(self.model.quiz_id == quiz_id)
        )
        current = result.scalar()
        return 0 if current is None else current + 1
