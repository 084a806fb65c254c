"""
Grading Service

Teacher-side results: per-quiz result table, per-student answer
breakdown, and manual grading of short answers.
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from quizroom.core.exceptions import NotFound, ValidationFailed
from quizroom.models.attempt import AttemptStatus as AttemptStatusModel
from quizroom.models.question import QuestionType as QuestionTypeModel
from quizroom.models.quiz import Quiz
from quizroom.repositories.attempt_repo import AttemptRepository, AnswerRepository
from quizroom.schemas.attempt import (
    AnswerDetail,
    GradeState,
    ManualGradeResponse,
    QuizResultsResponse,
    ResultRow,
    StudentResultDetailResponse,
)
from quizroom.services import grading

logger = logging.getLogger(__name__)


def _grade_state(grade: grading.Grade) -> GradeState:
    if isinstance(grade, grading.Correct):
        return GradeState.CORRECT
    if isinstance(grade, grading.Incorrect):
        return GradeState.INCORRECT
    return GradeState.UNGRADED


class GradingService:
    """Service for results and manual grading."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.attempt_repo = AttemptRepository(db)
        self.answer_repo = AnswerRepository(db)

    # ============================================================
    # RESULTS
    # ============================================================

    async def list_results(self, quiz: Quiz) -> QuizResultsResponse:
        """One row per attempt, highest score first."""
        attempts = await self.attempt_repo.get_by_quiz(quiz.id)
        answers_by_attempt = await self.answer_repo.get_by_attempts([a.id for a in attempts])

        rows = []
        for attempt in attempts:
            summary = grading.summarize(quiz.questions, answers_by_attempt.get(attempt.id, []))
            rows.append(ResultRow(
                attempt_id=attempt.id,
                student_name=attempt.student.full_name,
                student_id=attempt.student.user_id,
                status=attempt.status.value,
                is_blocked=attempt.is_blocked,
                score=summary.score,
                total_points=summary.total_points,
                started_at=attempt.started_at,
                submitted_at=attempt.submitted_at,
                needs_grading=summary.pending_count,
            ))

        rows.sort(key=lambda r: (-r.score, r.student_name.lower()))
        return QuizResultsResponse(quiz_id=quiz.id, results=rows)

    async def student_result_detail(self, quiz: Quiz, attempt_id: UUID) -> StudentResultDetailResponse:
        attempt = await self.attempt_repo.get_with_student(attempt_id)
        if not attempt or attempt.quiz_id != quiz.id:
            raise NotFound("Attempt not found")

        answers = await self.answer_repo.get_by_attempt(attempt.id)
        questions_by_id = {q.id: q for q in quiz.questions}
        summary = grading.summarize(quiz.questions, answers)

        details = []
        for answer in answers:
            question = questions_by_id.get(answer.question_id)
            if question is None:
                continue
            grade = grading.grade_from_columns(answer.points_awarded, answer.is_correct)
            details.append(AnswerDetail(
                question_id=question.id,
                question_text=question.question_text,
                question_type=question.question_type.value,
                options=question.options,
                correct_answer=question.correct_answer,
                max_points=question.points,
                response=answer.response,
                grade_state=_grade_state(grade),
                points_awarded=answer.points_awarded,
                is_correct=answer.is_correct,
                time_taken_seconds=answer.time_taken_seconds,
                answered_at=answer.answered_at,
            ))

        order = {q.id: q.display_order for q in quiz.questions}
        details.sort(key=lambda d: order[d.question_id])

        return StudentResultDetailResponse(
            attempt_id=attempt.id,
            quiz_id=quiz.id,
            student_name=attempt.student.full_name,
            student_id=attempt.student.user_id,
            status=attempt.status.value,
            is_blocked=attempt.is_blocked,
            score=summary.score,
            total_points=summary.total_points,
            started_at=attempt.started_at,
            submitted_at=attempt.submitted_at,
            pending_count=summary.pending_count,
            answers=details,
        )

    # ============================================================
    # MANUAL GRADING
    # ============================================================

    async def manual_grade(
        self,
        quiz: Quiz,
        attempt_id: UUID,
        question_id: UUID,
        points: float,
    ) -> ManualGradeResponse:
        """
        Grade one short answer.

        The only path that gives a short answer a non-null
        points_awarded. A submitted attempt's stored score is
        recomputed so the result table stays in sync.

        Raises:
            ValidationFailed: points < 0 or above the question's points,
                or the question isn't a short answer
        """
        attempt = await self.attempt_repo.get_by_id(attempt_id)
        if not attempt or attempt.quiz_id != quiz.id:
            raise NotFound("Attempt not found")

        question = next((q for q in quiz.questions if q.id == question_id), None)
        if question is None:
            raise NotFound("Question not found in this quiz")
        if question.question_type != QuestionTypeModel.SHORT_ANSWER:
            raise ValidationFailed("Only short answer questions are graded manually")

        answer = await self.answer_repo.get_for_question(attempt.id, question.id)
        if answer is None:
            raise NotFound("Student has not answered this question")

        grade = grading.manual_grade(points, question.points)
        answer.points_awarded = grade.points_awarded
        answer.is_correct = grade.is_correct

        answers = await self.answer_repo.get_by_attempt(attempt.id)
        summary = grading.summarize(quiz.questions, answers)
        if attempt.status == AttemptStatusModel.SUBMITTED:
            attempt.score = summary.score
            attempt.total_points = summary.total_points

        await self.db.commit()
        logger.info(f"Manual grade on attempt {attempt.id} question {question.id}: {points:g}/{question.points:g}")

        return ManualGradeResponse(
            attempt_id=attempt.id,
            question_id=question.id,
            points_awarded=grade.points_awarded,
            is_correct=grade.is_correct,
            score=summary.score,
            pending_count=summary.pending_count,
        )
