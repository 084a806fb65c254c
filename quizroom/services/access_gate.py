"""
Access Gate

Decides whether a student may enter a quiz room. Checks run in this
order and the first failure wins:

1. room code resolves to a quiz                     -> NotFound
2. quiz is joinable (active or started)             -> AccessDenied, logged as an invalid entry
3. student identifier resolves to an active student -> NotFound / AccessDenied
4. class / individual restriction                   -> AccessDenied
5. existing attempt is not blocked                  -> AccessDenied

On success the student's single attempt row is returned, created in
the waiting state on first entry.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from quizroom.core.clock import Clock, utcnow
from quizroom.core.exceptions import AccessDenied, NotFound
from quizroom.models.invalid_entry import InvalidEntry
from quizroom.models.quiz import Quiz
from quizroom.models.user import User
from quizroom.repositories.attempt_repo import AttemptRepository
from quizroom.repositories.quiz_repo import QuizRepository
from quizroom.repositories.user_repo import UserRepository
from quizroom.schemas.attempt import JoinRequest, JoinResponse
from quizroom.services.quiz_state import JOINABLE_STATUSES, QuizStateMachine

logger = logging.getLogger(__name__)

BLOCKED_MESSAGE = "Access Revoked: You have been blocked by the instructor."


class AccessGate:
    """Room-code entry for students."""

    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock
        self.quiz_repo = QuizRepository(db)
        self.user_repo = UserRepository(db)
        self.attempt_repo = AttemptRepository(db)
        self.state = QuizStateMachine(db, clock)

    async def join(self, request: JoinRequest) -> JoinResponse:
        quiz = await self.quiz_repo.get_by_room_code(request.room_code)
        if not quiz:
            raise NotFound("Invalid room code")

        status = await self.state.refresh(quiz)
        if status not in JOINABLE_STATUSES:
            await self._log_invalid_entry(quiz, request.student_id)
            raise AccessDenied(f"This quiz is not open for entry (status: {status.value})")

        student = await self.user_repo.get_student(request.student_id)
        if not student:
            raise NotFound("Student ID not found")
        if not student.is_active:
            raise AccessDenied("Student account is inactive")

        await self._check_restriction(quiz, student)

        # Captured before get_or_create: a rollback inside it expires
        # every loaded instance.
        quiz_id, quiz_title = quiz.id, quiz.title
        quiz_status = quiz.status.value
        quiz_duration, quiz_start = quiz.duration_minutes, quiz.start_time
        student_db_id, student_name, student_user_id = student.id, student.full_name, student.user_id

        attempt, created = await self.attempt_repo.get_or_create(student_db_id, quiz_id)
        if attempt.is_blocked:
            logger.warning(f"Blocked student {student_user_id} tried to re-enter quiz {quiz_id}")
            raise AccessDenied(BLOCKED_MESSAGE)

        if created:
            logger.info(f"Student {student_user_id} joined quiz {quiz_id}")

        return JoinResponse(
            student_name=student_name,
            student_id=student_user_id,
            student_db_id=student_db_id,
            attempt_id=attempt.id,
            attempt_status=attempt.status.value,
            quiz_id=quiz_id,
            quiz_title=quiz_title,
            quiz_status=quiz_status,
            time_limit=quiz_duration,
            start_time=quiz_start,
            server_time=self.clock(),
        )

    async def _check_restriction(self, quiz: Quiz, student: User) -> None:
        """
        A quiz with any allowed classes or invited students is restricted;
        the student must be in one of the classes or on the invite list.
        """
        if not quiz.is_restricted:
            return

        if any(s.id == student.id for s in quiz.allowed_students):
            return

        class_ids = [c.id for c in quiz.allowed_classes]
        if await self.user_repo.is_enrolled_in_any(student.id, class_ids):
            return

        class_names = [c.name for c in quiz.allowed_classes]
        raise AccessDenied(
            "You are not enrolled in a class allowed to take this quiz",
            errors={"allowed_classes": class_names},
        )

    async def _log_invalid_entry(self, quiz: Quiz, student_identifier: str) -> None:
        self.db.add(InvalidEntry(quiz_id=quiz.id, student_identifier=student_identifier[:50]))
        await self.db.commit()
        logger.warning(f"Invalid entry on quiz {quiz.id} ({quiz.status.value}) by '{student_identifier}'")
