"""
Session Control & Results Endpoints

Teacher-facing endpoints used while a quiz runs and after it ends.

Endpoints:
----------
- GET  /quizzes/{quiz_id}/monitor                           - Live dashboard (polled)
- POST /quizzes/{quiz_id}/attempts/{attempt_id}/control     - Pause / resume / block / unblock
- GET  /quizzes/{quiz_id}/results                           - Result table
- GET  /quizzes/{quiz_id}/results/{attempt_id}              - One student's answers
- POST /quizzes/{quiz_id}/results/{attempt_id}/grade        - Manually grade a short answer
"""

from uuid import UUID

from fastapi import APIRouter, Depends

from quizroom.api.deps import (
    get_attempt_service,
    get_grading_service,
    get_monitoring_service,
    get_owned_quiz,
)
from quizroom.models import Quiz
from quizroom.schemas.attempt import (
    ControlRequest,
    ControlResponse,
    ManualGradeRequest,
    ManualGradeResponse,
    QuizResultsResponse,
    StudentResultDetailResponse,
)
from quizroom.schemas.common import ApiResponse, ok
from quizroom.schemas.monitoring import LiveMonitorResponse
from quizroom.services.attempt_service import AttemptService
from quizroom.services.grading_service import GradingService
from quizroom.services.monitoring_service import MonitoringService

router = APIRouter(tags=["Session Control"])


# ============================================================
# LIVE MONITOR
# ============================================================

@router.get(
    "/quizzes/{quiz_id}/monitor",
    response_model=ApiResponse[LiveMonitorResponse],
    summary="Live monitoring",
    description="Read-only snapshot of every attempt. Poll every few seconds.",
)
async def live_monitor(
    quiz: Quiz = Depends(get_owned_quiz),
    service: MonitoringService = Depends(get_monitoring_service),
):
    return ok(await service.live_monitor(quiz))


@router.post(
    "/quizzes/{quiz_id}/attempts/{attempt_id}/control",
    response_model=ApiResponse[ControlResponse],
    summary="Control a student's attempt",
)
async def control_attempt(
    attempt_id: UUID,
    request: ControlRequest,
    quiz: Quiz = Depends(get_owned_quiz),
    service: AttemptService = Depends(get_attempt_service),
):
    result = await service.control_attempt(quiz, attempt_id, request.action)
    return ok(result, f"Attempt {request.action.value} applied")


# ============================================================
# RESULTS / GRADING
# ============================================================

@router.get(
    "/quizzes/{quiz_id}/results",
    response_model=ApiResponse[QuizResultsResponse],
    summary="Quiz results",
)
async def list_results(
    quiz: Quiz = Depends(get_owned_quiz),
    service: GradingService = Depends(get_grading_service),
):
    return ok(await service.list_results(quiz))


@router.get(
    "/quizzes/{quiz_id}/results/{attempt_id}",
    response_model=ApiResponse[StudentResultDetailResponse],
    summary="Student result detail",
)
async def student_result_detail(
    attempt_id: UUID,
    quiz: Quiz = Depends(get_owned_quiz),
    service: GradingService = Depends(get_grading_service),
):
    return ok(await service.student_result_detail(quiz, attempt_id))


@router.post(
    "/quizzes/{quiz_id}/results/{attempt_id}/grade",
    response_model=ApiResponse[ManualGradeResponse],
    summary="Grade a short answer",
    description="Points must be between 0 and the question's points; out-of-range grades are rejected.",
)
async def manual_grade(
    attempt_id: UUID,
    request: ManualGradeRequest,
    quiz: Quiz = Depends(get_owned_quiz),
    service: GradingService = Depends(get_grading_service),
):
    result = await service.manual_grade(quiz, attempt_id, request.question_id, request.points)
    return ok(result, "Grade saved")
