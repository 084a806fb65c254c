"""
Attempt Service

The attempt state machine and the student exam runner:

    (none) -> waiting -> in_progress <-> paused
                              |
                              v
                          submitted   (terminal)

is_blocked is a separate flag that can be raised from any state except
submitted. A blocked attempt can't start, answer or finish.
"""

import logging
import random
from typing import List
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from quizroom.core.clock import Clock, utcnow
from quizroom.core.config import settings
from quizroom.core.exceptions import AccessDenied, NotFound, StateConflict
from quizroom.models.attempt import Attempt, AttemptStatus as AttemptStatusModel
from quizroom.models.quiz import Quiz, QuizStatus as QuizStatusModel
from quizroom.repositories.attempt_repo import AttemptRepository, AnswerRepository
from quizroom.repositories.quiz_repo import QuizRepository, QuestionRepository
from quizroom.schemas.attempt import (
    StartExamRequest,
    StartExamResponse,
    ExamQuestionResponse,
    ExamOptionResponse,
    AnswerSubmitRequest,
    AnswerSubmitResponse,
    FinishExamResponse,
    AttemptStatusResponse,
    ResultSummaryResponse,
    ControlAction,
    ControlResponse,
)
from quizroom.services.access_gate import BLOCKED_MESSAGE
from quizroom.services.grading import grade_response, normalize_response, summarize
from quizroom.services.quiz_state import QuizStateMachine, time_left

logger = logging.getLogger(__name__)

ANSWERABLE_STATUSES = frozenset({AttemptStatusModel.IN_PROGRESS, AttemptStatusModel.PAUSED})


class AttemptService:
    """Service for attempt lifecycle, answers and results."""

    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock
        self.attempt_repo = AttemptRepository(db)
        self.answer_repo = AnswerRepository(db)
        self.quiz_repo = QuizRepository(db)
        self.question_repo = QuestionRepository(db)
        self.state = QuizStateMachine(db, clock)

    # ============================================================
    # START
    # ============================================================

    async def start_exam(self, request: StartExamRequest) -> StartExamResponse:
        """
        Move the student's attempt into progress.

        Calling it again on a running or paused attempt is an idempotent
        resume; it never creates a second attempt.
        """
        attempt = await self.attempt_repo.get_by_student_and_quiz(request.student_db_id, request.quiz_id)
        if not attempt:
            raise NotFound("No attempt found for this quiz. Please join with the room code first.")

        if attempt.is_blocked:
            raise AccessDenied(BLOCKED_MESSAGE)
        if attempt.status == AttemptStatusModel.SUBMITTED:
            raise StateConflict("You have already submitted this quiz")

        quiz = await self._get_quiz(attempt.quiz_id)
        quiz_status = await self.state.refresh(quiz)

        if attempt.status == AttemptStatusModel.WAITING:
            if quiz_status == QuizStatusModel.FINISHED:
                raise StateConflict("Quiz has ended")
            if quiz_status != QuizStatusModel.STARTED:
                raise StateConflict(f"Quiz has not started (status: {quiz_status.value})")
            attempt.status = AttemptStatusModel.IN_PROGRESS
            attempt.started_at = self.clock()
            await self.db.commit()
            outcome = "started"
            logger.info(f"Attempt {attempt.id} started on quiz {quiz.id}")
        else:
            outcome = "resumed"

        now = self.clock()
        return StartExamResponse(
            attempt_id=attempt.id,
            status=outcome,
            started_at=attempt.started_at,
            remaining_seconds=time_left(quiz, now),
            server_time=now,
        )

    async def get_exam_questions(self, quiz_id: UUID) -> List[ExamQuestionResponse]:
        """Questions for the exam screen, with answer keys stripped."""
        quiz = await self._get_quiz(quiz_id)
        quiz_status = await self.state.refresh(quiz)
        if quiz_status != QuizStatusModel.STARTED:
            raise StateConflict(f"Quiz is not running (status: {quiz_status.value})")

        questions = list(quiz.questions)
        if settings.SHUFFLE_QUESTIONS:
            random.shuffle(questions)

        result = []
        for q in questions:
            options = None
            if q.options:
                options = [ExamOptionResponse(id=o["id"], text=o["text"]) for o in q.options]
                if settings.SHUFFLE_OPTIONS:
                    random.shuffle(options)
            result.append(ExamQuestionResponse(
                id=q.id,
                question_type=q.question_type.value,
                question_text=q.question_text,
                options=options,
                points=q.points,
                time_limit_seconds=q.time_limit_seconds,
            ))
        return result

    # ============================================================
    # ANSWERS
    # ============================================================

    async def submit_answer(self, request: AnswerSubmitRequest) -> AnswerSubmitResponse:
        """
        Save (or overwrite) the answer to one question and grade it.

        Objective questions are scored immediately; short answers are
        stored ungraded until a teacher grades them.
        """
        attempt = await self._get_attempt(request.attempt_id)
        self._ensure_answerable(attempt)

        quiz = await self._get_quiz(attempt.quiz_id)
        quiz_status = await self.state.refresh(quiz)
        if quiz_status != QuizStatusModel.STARTED:
            raise StateConflict("Quiz is no longer accepting answers")

        question = next((q for q in quiz.questions if q.id == request.question_id), None)
        if question is None:
            raise NotFound("Question not found in this quiz")

        response = normalize_response(question.question_type, request.answer)
        grade = grade_response(question.question_type, question.correct_answer, question.points, response)

        attempt_id, question_id = attempt.id, question.id
        answer = await self.answer_repo.upsert(
            attempt_id,
            question_id,
            response=response,
            points_awarded=grade.points_awarded,
            is_correct=grade.is_correct,
            time_taken_seconds=request.time_taken,
        )

        return AnswerSubmitResponse(saved=True, question_id=question_id, answered_at=answer.answered_at)

    # ============================================================
    # FINISH
    # ============================================================

    async def finish_exam(self, attempt_id: UUID) -> FinishExamResponse:
        """
        Submit the attempt.

        Allowed after the quiz's own deadline so a client that was cut
        off by the timer can still hand in what it has.
        """
        attempt = await self._get_attempt(attempt_id)
        self._ensure_answerable(attempt)

        quiz = await self._get_quiz(attempt.quiz_id)
        await self.state.refresh(quiz)

        answers = await self.answer_repo.get_by_attempt(attempt.id)
        summary = summarize(quiz.questions, answers)

        attempt.status = AttemptStatusModel.SUBMITTED
        attempt.is_paused = False
        attempt.submitted_at = self.clock()
        attempt.score = summary.score
        attempt.total_points = summary.total_points
        await self.db.commit()

        logger.info(f"Attempt {attempt.id} submitted: {summary.score:g}/{summary.total_points:g}")
        return FinishExamResponse(
            attempt_id=attempt.id,
            status=attempt.status.value,
            score=summary.score,
            total_points=summary.total_points,
            submitted_at=attempt.submitted_at,
        )

    # ============================================================
    # POLLING / RESULTS
    # ============================================================

    async def get_attempt_status(self, attempt_id: UUID) -> AttemptStatusResponse:
        attempt = await self._get_attempt(attempt_id)
        return AttemptStatusResponse(
            attempt_id=attempt.id,
            status=attempt.status.value,
            is_paused=attempt.is_paused,
            is_blocked=attempt.is_blocked,
        )

    async def get_result(self, attempt_id: UUID) -> ResultSummaryResponse:
        """Provisional score; pending short answers are counted separately."""
        attempt = await self._get_attempt(attempt_id)
        quiz = await self._get_quiz(attempt.quiz_id)
        answers = await self.answer_repo.get_by_attempt(attempt.id)
        summary = summarize(quiz.questions, answers)

        return ResultSummaryResponse(
            attempt_id=attempt.id,
            status=attempt.status.value,
            is_blocked=attempt.is_blocked,
            score=summary.score,
            total_points=summary.total_points,
            total_questions=summary.total_questions,
            correct_answers=summary.correct_count,
            has_manual_grading=summary.has_pending_manual_grading,
            pending_count=summary.pending_count,
        )

    # ============================================================
    # TEACHER CONTROL
    # ============================================================

    async def control_attempt(self, quiz: Quiz, attempt_id: UUID, action: ControlAction) -> ControlResponse:
        """
        Pause, resume, block or unblock one student's attempt.

        The caller has already checked that the teacher owns `quiz`.
        """
        attempt = await self.attempt_repo.get_by_id(attempt_id)
        if not attempt or attempt.quiz_id != quiz.id:
            raise NotFound("Attempt not found")

        if attempt.status == AttemptStatusModel.SUBMITTED and action != ControlAction.UNBLOCK:
            raise StateConflict(f"Cannot {action.value} a submitted attempt")

        if action == ControlAction.PAUSE:
            if attempt.status != AttemptStatusModel.IN_PROGRESS:
                raise StateConflict(f"Only an attempt in progress can be paused (status: {attempt.status.value})")
            attempt.status = AttemptStatusModel.PAUSED
            attempt.is_paused = True

        elif action == ControlAction.RESUME:
            if attempt.status != AttemptStatusModel.PAUSED:
                raise StateConflict(f"Only a paused attempt can be resumed (status: {attempt.status.value})")
            attempt.status = AttemptStatusModel.IN_PROGRESS
            attempt.is_paused = False

        elif action == ControlAction.BLOCK:
            attempt.is_blocked = True

        elif action == ControlAction.UNBLOCK:
            attempt.is_blocked = False

        await self.db.commit()
        logger.info(f"Attempt {attempt.id} on quiz {quiz.id}: {action.value}")

        return ControlResponse(
            attempt_id=attempt.id,
            action=action,
            status=attempt.status.value,
            is_paused=attempt.is_paused,
            is_blocked=attempt.is_blocked,
        )

    # ============================================================
    # PRIVATE HELPERS
    # ============================================================

    async def _get_attempt(self, attempt_id: UUID) -> Attempt:
        attempt = await self.attempt_repo.get_by_id(attempt_id)
        if not attempt:
            raise NotFound("Attempt not found")
        return attempt

    async def _get_quiz(self, quiz_id: UUID) -> Quiz:
        quiz = await self.quiz_repo.get_by_id(quiz_id)
        if not quiz:
            raise NotFound("Quiz not found")
        return quiz

    def _ensure_answerable(self, attempt: Attempt) -> None:
        if attempt.is_blocked:
            raise AccessDenied(BLOCKED_MESSAGE)
        if attempt.status == AttemptStatusModel.SUBMITTED:
            raise StateConflict("You have already submitted this quiz")
        if attempt.status not in ANSWERABLE_STATUSES:
            raise StateConflict("Exam has not been started")
        if attempt.status == AttemptStatusModel.PAUSED and settings.REJECT_ANSWERS_WHILE_PAUSED:
            raise StateConflict("Your exam has been paused by the instructor")
