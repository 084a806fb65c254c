"""
Quiz Service

Business logic for teacher-side quiz operations:
- Quiz authoring (room codes, class and student access lists, questions)
- Lifecycle transitions through the QuizStateMachine
- Live time adjustment of a running quiz
- Status polling shared by the teacher dashboard and the exam runner
"""

import logging
import secrets
from typing import List, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from quizroom.core.clock import Clock, end_time, utcnow
from quizroom.core.config import settings
from quizroom.core.exceptions import NotFound, StateConflict, ValidationFailed
from quizroom.models.question import Question, QuestionType as QuestionTypeModel
from quizroom.models.quiz import Quiz, QuizStatus as QuizStatusModel
from quizroom.repositories.quiz_repo import QuizRepository, QuestionRepository
from quizroom.repositories.user_repo import UserRepository, SchoolClassRepository
from quizroom.repositories.attempt_repo import InvalidEntryRepository
from quizroom.schemas.quiz import (
    QuizCreateRequest,
    QuizUpdateRequest,
    QuestionCreateRequest,
    QuestionUpdateRequest,
    QuizResponse,
    QuizDetailResponse,
    QuizCreatedResponse,
    QuizClassesResponse,
    AllowedStudentsResponse,
    QuestionResponse,
    OptionResponse,
    ClassSummary,
    QuizStatusResponse,
    TimeAdjustResponse,
    InvalidEntryResponse,
)
from quizroom.services.grading import normalize_options, encode_correct_answer
from quizroom.services.quiz_state import QuizStateMachine, time_left

logger = logging.getLogger(__name__)


class QuizService:
    """Service for quiz authoring, lifecycle and timing."""

    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock
        self.quiz_repo = QuizRepository(db)
        self.question_repo = QuestionRepository(db)
        self.user_repo = UserRepository(db)
        self.class_repo = SchoolClassRepository(db)
        self.invalid_entry_repo = InvalidEntryRepository(db)
        self.state = QuizStateMachine(db, clock)

    # ============================================================
    # CREATE QUIZ
    # ============================================================

    async def create_quiz(self, teacher_id: UUID, request: QuizCreateRequest) -> QuizCreatedResponse:
        """
        Create a draft quiz with a fresh room code.

        The quiz row and its class links are written in one commit. If a
        concurrent create grabs the same room code between our check and
        our insert, the unique constraint rejects it and we try again.
        """
        for _ in range(settings.ROOM_CODE_MAX_RETRIES):
            room_code = await self._generate_room_code()
            classes = await self._load_owned_classes(teacher_id, request.class_ids)

            quiz = Quiz(
                teacher_id=teacher_id,
                title=request.title,
                description=request.description,
                room_code=room_code,
                duration_minutes=request.duration_minutes or settings.DEFAULT_DURATION_MINUTES,
                status=QuizStatusModel.DRAFT,
                questions=[],
                allowed_classes=classes,
                allowed_students=[],
            )
            self.db.add(quiz)
            try:
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                logger.warning(f"Room code {room_code} taken concurrently, retrying")
                continue

            logger.info(f"Quiz {quiz.id} created by teacher {teacher_id} with room code {room_code}")
            return QuizCreatedResponse(id=quiz.id, room_code=quiz.room_code, status=quiz.status.value)

        raise StateConflict("Could not allocate a unique room code. Please try again.")

    # ============================================================
    # LIST / GET
    # ============================================================

    async def list_quizzes(
        self,
        teacher_id: UUID,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[QuizResponse], int]:
        quizzes = await self.quiz_repo.get_by_teacher(teacher_id, skip, limit)
        total = await self.quiz_repo.count_by_teacher(teacher_id)

        responses = []
        for quiz in quizzes:
            await self.state.refresh(quiz)
            responses.append(self._build_quiz_response(quiz))
        return responses, total

    async def get_quiz(self, quiz_id: UUID, teacher_id: UUID) -> QuizDetailResponse:
        quiz = await self.get_owned_quiz(quiz_id, teacher_id)
        await self.state.refresh(quiz)

        # class members plus individual invites, each student once
        allowed = await self.class_repo.student_ids([c.id for c in quiz.allowed_classes])
        allowed.update(s.id for s in quiz.allowed_students)

        base = self._build_quiz_response(quiz)
        return QuizDetailResponse(
            **base.model_dump(),
            questions=[self._build_question_response(q) for q in quiz.questions],
            allowed_classes=[ClassSummary(id=c.id, name=c.name) for c in quiz.allowed_classes],
            allowed_students_count=len(allowed),
            server_time=self.clock(),
        )

    async def get_owned_quiz(self, quiz_id: UUID, teacher_id: UUID) -> Quiz:
        """
        Raises:
            NotFound: if the quiz doesn't exist or belongs to someone else
        """
        quiz = await self.quiz_repo.get_for_teacher(quiz_id, teacher_id)
        if not quiz:
            raise NotFound("Quiz not found")
        return quiz

    # ============================================================
    # UPDATE / DELETE
    # ============================================================

    async def update_quiz(self, quiz_id: UUID, teacher_id: UUID, request: QuizUpdateRequest) -> QuizResponse:
        quiz = await self.get_owned_quiz(quiz_id, teacher_id)
        current = await self.state.refresh(quiz)

        updates = request.model_dump(exclude_unset=True, exclude_none=True)
        if not updates:
            raise ValidationFailed("No valid fields to update")

        if "duration_minutes" in updates and current in (QuizStatusModel.STARTED, QuizStatusModel.FINISHED):
            raise StateConflict("Duration of a started quiz can only be changed with a time adjustment")

        for field, value in updates.items():
            setattr(quiz, field, value.strip() if field == "title" else value)

        await self.db.commit()
        return self._build_quiz_response(quiz)

    async def delete_quiz(self, quiz_id: UUID, teacher_id: UUID) -> None:
        quiz = await self.get_owned_quiz(quiz_id, teacher_id)
        if await self.state.refresh(quiz) == QuizStatusModel.STARTED:
            raise StateConflict("Cannot delete a quiz while it is running")

        await self.db.delete(quiz)
        await self.db.commit()
        logger.info(f"Quiz {quiz_id} deleted by teacher {teacher_id}")

    # ============================================================
    # ACCESS LISTS
    # ============================================================

    async def set_quiz_classes(self, quiz_id: UUID, teacher_id: UUID, class_ids: List[UUID]) -> QuizClassesResponse:
        """Replace the allowed classes all-or-nothing."""
        quiz = await self.get_owned_quiz(quiz_id, teacher_id)
        if await self.state.refresh(quiz) == QuizStatusModel.FINISHED:
            raise StateConflict("Quiz has already finished")

        classes = await self._load_owned_classes(teacher_id, class_ids)
        try:
            quiz.allowed_classes = classes
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Quiz {quiz_id} classes set to {[str(c) for c in class_ids]}")
        return QuizClassesResponse(quiz_id=quiz_id, class_ids=[c.id for c in classes])

    async def add_allowed_students(
        self,
        quiz_id: UUID,
        teacher_id: UUID,
        student_ids: List[str],
    ) -> AllowedStudentsResponse:
        """Invite students individually by school identifier."""
        quiz = await self.get_owned_quiz(quiz_id, teacher_id)

        wanted = list(dict.fromkeys(s.strip() for s in student_ids if s.strip()))
        students = await self.user_repo.get_students_by_user_ids(wanted)
        found = {s.user_id for s in students}
        existing = {s.id for s in quiz.allowed_students}

        added = 0
        for student in students:
            if student.id not in existing:
                quiz.allowed_students.append(student)
                added += 1

        await self.db.commit()
        return AllowedStudentsResponse(
            added=added,
            not_found=[s for s in wanted if s not in found],
        )

    # ============================================================
    # QUESTIONS
    # ============================================================

    async def list_questions(self, quiz_id: UUID, teacher_id: UUID) -> List[QuestionResponse]:
        quiz = await self.get_owned_quiz(quiz_id, teacher_id)
        return [self._build_question_response(q) for q in quiz.questions]

    async def add_question(
        self,
        quiz_id: UUID,
        teacher_id: UUID,
        request: QuestionCreateRequest,
    ) -> QuestionResponse:
        quiz = await self.get_owned_quiz(quiz_id, teacher_id)

        question_type = QuestionTypeModel(request.question_type.value)
        raw_options = [o.model_dump() for o in request.options] if request.options else None
        options = normalize_options(question_type, raw_options)

        question = Question(
            question_type=question_type,
            question_text=request.question_text.strip(),
            options=options,
            correct_answer=encode_correct_answer(question_type, options),
            points=request.points or settings.DEFAULT_QUESTION_POINTS,
            time_limit_seconds=request.time_limit_seconds,
            display_order=await self.question_repo.next_display_order(quiz.id),
        )
        quiz.questions.append(question)
        await self.db.commit()

        return self._build_question_response(question)

    async def update_question(
        self,
        quiz_id: UUID,
        question_id: UUID,
        teacher_id: UUID,
        request: QuestionUpdateRequest,
    ) -> QuestionResponse:
        """
        Edit a question at any point in the quiz's life.

        Answers already saved keep the grade they were given; they are
        not re-scored against the new answer key.
        """
        quiz = await self.get_owned_quiz(quiz_id, teacher_id)
        question = await self.question_repo.get_in_quiz(question_id, quiz.id)
        if not question:
            raise NotFound("Question not found")

        updates = request.model_dump(exclude_unset=True)
        if not any(v is not None for v in updates.values()):
            raise ValidationFailed("No valid fields to update")

        if "question_text" in updates and updates["question_text"] is not None:
            question.question_text = updates["question_text"].strip()
        if updates.get("points") is not None:
            question.points = updates["points"]
        if "time_limit_seconds" in updates:
            question.time_limit_seconds = updates["time_limit_seconds"]

        if updates.get("question_type") is not None or updates.get("options") is not None:
            question_type = (
                QuestionTypeModel(request.question_type.value)
                if request.question_type is not None
                else question.question_type
            )
            if request.options is not None:
                raw_options = [o.model_dump() for o in request.options]
            elif question_type == QuestionTypeModel.SHORT_ANSWER:
                raw_options = None
            else:
                raw_options = question.options

            options = normalize_options(question_type, raw_options)
            question.question_type = question_type
            question.options = options
            question.correct_answer = encode_correct_answer(question_type, options)

        if quiz.status != QuizStatusModel.DRAFT:
            logger.info(f"Question {question_id} edited on {quiz.status.value} quiz {quiz_id}; existing answers keep their grades")

        await self.db.commit()
        return self._build_question_response(question)

    async def delete_question(self, quiz_id: UUID, question_id: UUID, teacher_id: UUID) -> None:
        quiz = await self.get_owned_quiz(quiz_id, teacher_id)
        question = await self.question_repo.get_in_quiz(question_id, quiz.id)
        if not question:
            raise NotFound("Question not found")

        # delete-orphan removes the row and its answers
        quiz.questions.remove(question)
        await self.db.commit()

    # ============================================================
    # LIFECYCLE
    # ============================================================

    async def set_status(self, quiz_id: UUID, teacher_id: UUID, status: str) -> QuizResponse:
        quiz = await self.get_owned_quiz(quiz_id, teacher_id)
        await self.state.transition(quiz, QuizStatusModel(status))
        return self._build_quiz_response(quiz)

    async def adjust_time(self, quiz_id: UUID, teacher_id: UUID, adjustment: int) -> TimeAdjustResponse:
        """
        Add (or remove) minutes from a running quiz.

        Everyone's deadline is start_time + duration_minutes, so this
        one write moves all participants' remaining time by the same
        amount. Duration never drops below MIN_DURATION_MINUTES.
        """
        quiz = await self.get_owned_quiz(quiz_id, teacher_id)
        if await self.state.refresh(quiz) != QuizStatusModel.STARTED:
            raise StateConflict("Can only adjust time for a started quiz")

        old_duration = quiz.duration_minutes
        new_duration = max(settings.MIN_DURATION_MINUTES, old_duration + adjustment)
        quiz.duration_minutes = new_duration
        await self.db.commit()

        logger.info(f"Quiz {quiz_id} duration {old_duration} -> {new_duration} min (requested {adjustment:+d})")

        now = self.clock()
        return TimeAdjustResponse(
            new_duration=new_duration,
            adjustment_applied=new_duration - old_duration,
            end_time=end_time(quiz.start_time, new_duration),
            remaining_seconds=time_left(quiz, now),
        )

    async def get_status(self, quiz_id: UUID) -> QuizStatusResponse:
        """Status poll used by waiting rooms and running exams."""
        quiz = await self.quiz_repo.get_by_id(quiz_id)
        if not quiz:
            raise NotFound("Quiz not found")
        await self.state.refresh(quiz)

        now = self.clock()
        return QuizStatusResponse(
            quiz_id=quiz.id,
            status=quiz.status.value,
            start_time=quiz.start_time,
            duration_minutes=quiz.duration_minutes,
            remaining_seconds=time_left(quiz, now),
            server_time=now,
            poll_interval_seconds=settings.STATUS_POLL_INTERVAL_SECONDS,
        )

    async def list_invalid_entries(self, quiz_id: UUID, teacher_id: UUID) -> List[InvalidEntryResponse]:
        quiz = await self.get_owned_quiz(quiz_id, teacher_id)
        entries = await self.invalid_entry_repo.get_by_quiz(quiz.id)
        return [InvalidEntryResponse.model_validate(e) for e in entries]

    # ============================================================
    # PRIVATE HELPERS
    # ============================================================

    async def _generate_room_code(self) -> str:
        """Draw random codes until one is unused."""
        alphabet = settings.ROOM_CODE_ALPHABET
        for _ in range(settings.ROOM_CODE_MAX_RETRIES):
            code = "".join(secrets.choice(alphabet) for _ in range(settings.ROOM_CODE_LENGTH))
            if not await self.quiz_repo.room_code_exists(code):
                return code
        raise StateConflict("Could not allocate a unique room code. Please try again.")

    async def _load_owned_classes(self, teacher_id: UUID, class_ids: List[UUID]):
        wanted = list(dict.fromkeys(class_ids))
        classes = await self.class_repo.get_by_ids(wanted)
        owned = {c.id: c for c in classes if c.teacher_id == teacher_id}
        missing = [str(c) for c in wanted if c not in owned]
        if missing:
            raise ValidationFailed("Unknown class ids", errors={"class_ids": missing})
        return [owned[c] for c in wanted]

    def _build_quiz_response(self, quiz: Quiz) -> QuizResponse:
        now = self.clock()
        return QuizResponse(
            id=quiz.id,
            title=quiz.title,
            description=quiz.description,
            room_code=quiz.room_code,
            status=quiz.status.value,
            duration_minutes=quiz.duration_minutes,
            start_time=quiz.start_time,
            end_time=end_time(quiz.start_time, quiz.duration_minutes),
            remaining_seconds=time_left(quiz, now),
            question_count=len(quiz.questions),
            total_points=quiz.total_points,
            created_at=quiz.created_at,
        )

    def _build_question_response(self, question: Question) -> QuestionResponse:
        options = None
        if question.options:
            options = [OptionResponse(**o) for o in question.options]
        return QuestionResponse(
            id=question.id,
            quiz_id=question.quiz_id,
            question_type=question.question_type.value,
            question_text=question.question_text,
            options=options,
            correct_answer=question.correct_answer,
            points=question.points,
            time_limit_seconds=question.time_limit_seconds,
            display_order=question.display_order,
        )
