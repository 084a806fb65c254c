"""
Live Monitoring Service

Read model behind the teacher dashboard, rebuilt on every poll. It
never writes attempts or answers; the only write a poll can cause is
the quiz auto-finish done by QuizStateMachine.refresh().
"""

from typing import Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from quizroom.core.clock import Clock, elapsed_seconds, utcnow
from quizroom.models.attempt import Attempt, AttemptStatus as AttemptStatusModel
from quizroom.models.quiz import Quiz
from quizroom.repositories.attempt_repo import AttemptRepository, AnswerRepository
from quizroom.schemas.monitoring import LiveMonitorResponse, LiveStudentRow, StatusLabel
from quizroom.services.grading import summarize
from quizroom.services.quiz_state import QuizStateMachine, time_left


def status_label(attempt: Attempt) -> StatusLabel:
    """Blocked wins over paused, paused over everything else."""
    if attempt.is_blocked:
        return StatusLabel.BLOCKED
    if attempt.is_paused or attempt.status == AttemptStatusModel.PAUSED:
        return StatusLabel.PAUSED
    if attempt.status == AttemptStatusModel.SUBMITTED:
        return StatusLabel.SUBMITTED
    if attempt.status == AttemptStatusModel.IN_PROGRESS:
        return StatusLabel.IN_PROGRESS
    return StatusLabel.WAITING


class MonitoringService:
    """Builds the live dashboard for one quiz."""

    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock
        self.attempt_repo = AttemptRepository(db)
        self.answer_repo = AnswerRepository(db)
        self.state = QuizStateMachine(db, clock)

    async def live_monitor(self, quiz: Quiz) -> LiveMonitorResponse:
        await self.state.refresh(quiz)
        now = self.clock()

        attempts = await self.attempt_repo.get_by_quiz(quiz.id)
        answers_by_attempt = await self.answer_repo.get_by_attempts([a.id for a in attempts])
        total_questions = len(quiz.questions)

        rows: List[LiveStudentRow] = []
        for attempt in attempts:
            answers = answers_by_attempt.get(attempt.id, [])
            summary = summarize(quiz.questions, answers)
            answered = summary.answered_count
            percentage = round(summary.correct_count / answered * 100, 2) if answered else 0.0

            if attempt.submitted_at is not None:
                elapsed = elapsed_seconds(attempt.started_at, attempt.submitted_at)
            else:
                elapsed = elapsed_seconds(attempt.started_at, now)

            rows.append(LiveStudentRow(
                attempt_id=attempt.id,
                student_db_id=attempt.student_id,
                student_name=attempt.student.full_name,
                student_id=attempt.student.user_id,
                status=attempt.status.value,
                status_label=status_label(attempt),
                is_paused=attempt.is_paused,
                is_blocked=attempt.is_blocked,
                started_at=attempt.started_at,
                submitted_at=attempt.submitted_at,
                answered_count=answered,
                total_questions=total_questions,
                correct_count=summary.correct_count,
                incorrect_count=summary.incorrect_count,
                pending_count=summary.pending_count,
                percentage=percentage,
                score=summary.score,
                total_time_spent=sum(a.time_taken_seconds or 0 for a in answers),
                elapsed_seconds=elapsed,
            ))

        # submitted first, then most correct, fastest, most answered
        rows.sort(key=lambda r: (
            r.status_label != StatusLabel.SUBMITTED,
            -r.correct_count,
            r.total_time_spent,
            -r.answered_count,
        ))

        counts: Dict[str, int] = {label.value: 0 for label in StatusLabel}
        for row in rows:
            counts[row.status_label.value] += 1
        counts["Total"] = len(rows)

        return LiveMonitorResponse(
            quiz_id=quiz.id,
            quiz_status=quiz.status.value,
            start_time=quiz.start_time,
            duration_minutes=quiz.duration_minutes,
            remaining_seconds=time_left(quiz, now),
            server_time=now,
            total_questions=total_questions,
            counts=counts,
            students=rows,
        )
