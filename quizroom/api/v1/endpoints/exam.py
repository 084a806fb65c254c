"""
Exam Endpoints

Student-facing exam runner. These endpoints are not authenticated: a
student is identified by the school identifier typed at join and by
the attempt id handed back from it.

Endpoints:
----------
- POST /exam/join                          - Enter a room code
- GET  /exam/quizzes/{quiz_id}/status      - Poll quiz status and countdown
- POST /exam/start                         - Start (or resume) the exam
- GET  /exam/quizzes/{quiz_id}/questions   - Questions without answer keys
- POST /exam/answers                       - Save one answer
- POST /exam/finish                        - Submit the attempt
- GET  /exam/attempts/{attempt_id}/status  - Poll pause / block flags
- GET  /exam/attempts/{attempt_id}/result  - Score summary
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends

from quizroom.api.deps import get_access_gate, get_attempt_service, get_quiz_service
from quizroom.schemas.attempt import (
    JoinRequest,
    JoinResponse,
    StartExamRequest,
    StartExamResponse,
    ExamQuestionResponse,
    AnswerSubmitRequest,
    AnswerSubmitResponse,
    FinishExamRequest,
    FinishExamResponse,
    AttemptStatusResponse,
    ResultSummaryResponse,
)
from quizroom.schemas.common import ApiResponse, ok
from quizroom.schemas.quiz import QuizStatusResponse
from quizroom.services.access_gate import AccessGate
from quizroom.services.attempt_service import AttemptService
from quizroom.services.quiz_service import QuizService

router = APIRouter(tags=["Exam"])


# ============================================================
# JOIN / STATUS
# ============================================================

@router.post(
    "/join",
    response_model=ApiResponse[JoinResponse],
    summary="Join a quiz room",
    description="""
    Resolves the room code, checks the quiz is open and the student is
    allowed in, and returns the student's attempt (created on first
    entry). server_time lets the client reconcile its clock.
    """,
)
async def join(
    request: JoinRequest,
    gate: AccessGate = Depends(get_access_gate),
):
    result = await gate.join(request)
    return ok(result, "Joined successfully")


@router.get(
    "/quizzes/{quiz_id}/status",
    response_model=ApiResponse[QuizStatusResponse],
    summary="Poll quiz status",
)
async def quiz_status(
    quiz_id: UUID,
    service: QuizService = Depends(get_quiz_service),
):
    return ok(await service.get_status(quiz_id))


# ============================================================
# TAKING THE EXAM
# ============================================================

@router.post(
    "/start",
    response_model=ApiResponse[StartExamResponse],
    summary="Start or resume the exam",
)
async def start_exam(
    request: StartExamRequest,
    service: AttemptService = Depends(get_attempt_service),
):
    result = await service.start_exam(request)
    return ok(result, f"Exam {result.status}")


@router.get(
    "/quizzes/{quiz_id}/questions",
    response_model=ApiResponse[List[ExamQuestionResponse]],
    summary="Get exam questions",
)
async def exam_questions(
    quiz_id: UUID,
    service: AttemptService = Depends(get_attempt_service),
):
    return ok(await service.get_exam_questions(quiz_id))


@router.post(
    "/answers",
    response_model=ApiResponse[AnswerSubmitResponse],
    summary="Save an answer",
    description="Re-submitting the same question overwrites the previous answer.",
)
async def submit_answer(
    request: AnswerSubmitRequest,
    service: AttemptService = Depends(get_attempt_service),
):
    return ok(await service.submit_answer(request), "Answer saved")


@router.post(
    "/finish",
    response_model=ApiResponse[FinishExamResponse],
    summary="Finish the exam",
)
async def finish_exam(
    request: FinishExamRequest,
    service: AttemptService = Depends(get_attempt_service),
):
    return ok(await service.finish_exam(request.attempt_id), "Exam submitted successfully")


# ============================================================
# ATTEMPT POLLING / RESULT
# ============================================================

@router.get(
    "/attempts/{attempt_id}/status",
    response_model=ApiResponse[AttemptStatusResponse],
    summary="Poll attempt flags",
)
async def attempt_status(
    attempt_id: UUID,
    service: AttemptService = Depends(get_attempt_service),
):
    return ok(await service.get_attempt_status(attempt_id))


@router.get(
    "/attempts/{attempt_id}/result",
    response_model=ApiResponse[ResultSummaryResponse],
    summary="Get result summary",
)
async def get_result(
    attempt_id: UUID,
    service: AttemptService = Depends(get_attempt_service),
):
    return ok(await service.get_result(attempt_id))
