"""
Quiz State Machine

Owns the quiz lifecycle:

    draft -> active -> started -> finished

Transitions only move forward and finished is terminal. A started quiz
whose deadline (start_time + duration_minutes) has passed is finished,
whether or not anyone has written that down yet: derived_status()
computes the effective status and refresh() persists the correction.
Every path that returns or enforces a quiz status goes through
refresh() first, so the stored status is only ever a lagging cache.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from quizroom.core.clock import Clock, is_expired, remaining_seconds, utcnow
from quizroom.core.exceptions import StateConflict, ValidationFailed
from quizroom.models.quiz import Quiz, QuizStatus
from quizroom.repositories.quiz_repo import QuizRepository

logger = logging.getLogger(__name__)

_ORDER = {
    QuizStatus.DRAFT: 0,
    QuizStatus.ACTIVE: 1,
    QuizStatus.STARTED: 2,
    QuizStatus.FINISHED: 3,
}

JOINABLE_STATUSES = frozenset({QuizStatus.ACTIVE, QuizStatus.STARTED})


def derived_status(quiz: Quiz, now: datetime) -> QuizStatus:
    """Effective status of a quiz at `now`, without touching storage."""
    if quiz.status == QuizStatus.STARTED and is_expired(quiz.start_time, quiz.duration_minutes, now):
        return QuizStatus.FINISHED
    return quiz.status


def time_left(quiz: Quiz, now: datetime) -> Optional[int]:
    """Seconds left on the quiz clock; 0 once finished, even if ended early."""
    if derived_status(quiz, now) == QuizStatus.FINISHED:
        return 0
    return remaining_seconds(quiz.start_time, quiz.duration_minutes, now)


class QuizStateMachine:
    """Lifecycle transitions and lazy auto-finish for quizzes."""

    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock
        self.quiz_repo = QuizRepository(db)

    async def refresh(self, quiz: Quiz) -> QuizStatus:
        """
        Bring the stored status in line with derived_status().

        Idempotent: once finished, repeated calls are no-ops.
        """
        effective = derived_status(quiz, self.clock())
        if effective == quiz.status:
            return quiz.status

        changed = await self.quiz_repo.mark_finished(quiz.id)
        await self.db.commit()
        await self.db.refresh(quiz)
        if changed:
            logger.info(f"Quiz {quiz.id} auto-finished (started {quiz.start_time}, {quiz.duration_minutes} min)")
        return quiz.status

    async def transition(self, quiz: Quiz, target: QuizStatus) -> Quiz:
        """
        Move a quiz forward to `target`.

        Raises:
            StateConflict: backward move, or the quiz is already finished
            ValidationFailed: activating/starting without questions or classes
        """
        current = await self.refresh(quiz)

        if target == current:
            return quiz

        if current == QuizStatus.FINISHED:
            raise StateConflict("Quiz has already finished")

        if _ORDER[target] < _ORDER[current]:
            raise StateConflict(
                f"Cannot move quiz from '{current.value}' back to '{target.value}'"
            )

        if target in JOINABLE_STATUSES:
            if not quiz.questions:
                raise ValidationFailed(
                    f"Cannot {target.value} quiz without questions. Please add at least one question."
                )
            if not quiz.allowed_classes:
                raise ValidationFailed(
                    f"Cannot {target.value} quiz without assigned classes. Please select at least one class."
                )

        quiz.status = target
        if target == QuizStatus.STARTED:
            quiz.start_time = self.clock()

        await self.db.commit()
        logger.info(f"Quiz {quiz.id} status {current.value} -> {target.value}")
        return quiz
