"""
Attempt Repository

Data access layer for Attempt, Answer and InvalidEntry models.

Attempt creation and answer saving are guarded by unique constraints
rather than read-then-write ordering: if a concurrent request wins the
insert, the IntegrityError is caught and the winner's row is reused.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from quizroom.core.clock import utcnow
from quizroom.repositories.base import BaseRepository
from quizroom.models.attempt import Attempt, AttemptStatus
from quizroom.models.answer import Answer
from quizroom.models.invalid_entry import InvalidEntry

logger = logging.getLogger(__name__)


class AttemptRepository(BaseRepository[Attempt]):
    """Repository for Attempt model."""

    def __init__(self, db: AsyncSession):
        super().__init__(Attempt, db)

    async def get_by_student_and_quiz(self, student_id: UUID, quiz_id: UUID) -> Optional[Attempt]:
        result = await self.db.execute(
            select(self.model).where(
                self.model.student_id == student_id,
                self.model.quiz_id == quiz_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_or_create(self, student_id: UUID, quiz_id: UUID) -> Tuple[Attempt, bool]:
        """
        Return the student's attempt for the quiz, creating a waiting one
        if none exists.

        Returns:
            (attempt, created)
        """
        existing = await self.get_by_student_and_quiz(student_id, quiz_id)
        if existing:
            return existing, False

        attempt = Attempt(
            student_id=student_id,
            quiz_id=quiz_id,
            status=AttemptStatus.WAITING,
            is_blocked=False,
            is_paused=False,
            started_at=None,
        )
        self.db.add(attempt)
        try:
            await self.db.commit()
        except IntegrityError:
            # Another request created it first; resume that one.
            await self.db.rollback()
            logger.info(f"Concurrent attempt creation for student {student_id} on quiz {quiz_id}; reusing row")
            existing = await self.get_by_student_and_quiz(student_id, quiz_id)
            if existing is None:
                raise
            return existing, False

        return attempt, True

    async def get_with_student(self, attempt_id: UUID) -> Optional[Attempt]:
        stmt = (
            select(self.model)
            .options(selectinload(self.model.student))
            .where(self.model.id == attempt_id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_quiz(self, quiz_id: UUID) -> List[Attempt]:
        """All attempts on a quiz with their students loaded."""
        stmt = (
            select(self.model)
            .options(selectinload(self.model.student))
            .where(self.model.quiz_id == quiz_id)
            .order_by(self.model.created_at)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())


class AnswerRepository(BaseRepository[Answer]):
    """Repository for Answer model."""

    def __init__(self, db: AsyncSession):
        super().__init__(Answer, db)

    async def get_by_attempt(self, attempt_id: UUID) -> List[Answer]:
        stmt = (
            select(self.model)
            .where(self.model.attempt_id == attempt_id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_by_attempts(self, attempt_ids: Sequence[UUID]) -> Dict[UUID, List[Answer]]:
        """Answers grouped by attempt id, for building dashboard rows in one query."""
        grouped: Dict[UUID, List[Answer]] = {a: [] for a in attempt_ids}
        if not attempt_ids:
            return grouped
        result = await self.db.execute(
            select(self.model).where(self.model.attempt_id.in_(list(attempt_ids)))
        )
        for answer in result.scalars().all():
            grouped.setdefault(answer.attempt_id, []).append(answer)
        return grouped

    async def get_for_question(self, attempt_id: UUID, question_id: UUID) -> Optional[Answer]:
        result = await self.db.execute(
            select(self.model).where(
                self.model.attempt_id == attempt_id,
                self.model.question_id == question_id,
            )
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        attempt_id: UUID,
        question_id: UUID,
        **values: Any,
    ) -> Answer:
        """
        Insert or overwrite the answer for (attempt, question).

        Re-submitting a question replaces response, grade and timing;
        there is never more than one row per pair.
        """
        values["answered_at"] = utcnow()

        existing = await self.get_for_question(attempt_id, question_id)
        if existing is None:
            answer = Answer(attempt_id=attempt_id, question_id=question_id, **values)
            self.db.add(answer)
            try:
                await self.db.commit()
                return answer
            except IntegrityError:
                await self.db.rollback()
                existing = await self.get_for_question(attempt_id, question_id)
                if existing is None:
                    raise

        for key, value in values.items():
            setattr(existing, key, value)
        await self.db.commit()
        return existing


class InvalidEntryRepository(BaseRepository[InvalidEntry]):
    """Repository for InvalidEntry model."""

    def __init__(self, db: AsyncSession):
        super().__init__(InvalidEntry, db)

    async def get_by_quiz(self, quiz_id: UUID, limit: int = 100) -> List[InvalidEntry]:
        stmt = (
            select(self.model)
            .where(self.model.quiz_id == quiz_id)
            .order_by(self.model.created_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
