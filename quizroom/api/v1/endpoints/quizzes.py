"""
Quiz Endpoints

Teacher-facing HTTP API for quiz authoring and lifecycle.

Endpoints:
----------
- POST   /quizzes                            - Create a draft quiz
- GET    /quizzes                            - List the teacher's quizzes
- GET    /quizzes/{quiz_id}                  - Quiz detail with questions
- PATCH  /quizzes/{quiz_id}                  - Update title / description / duration
- DELETE /quizzes/{quiz_id}                  - Delete a quiz
- PUT    /quizzes/{quiz_id}/classes          - Replace allowed classes
- POST   /quizzes/{quiz_id}/allowed-students - Invite individual students
- PATCH  /quizzes/{quiz_id}/status           - Move the quiz forward
- POST   /quizzes/{quiz_id}/adjust-time      - Add or remove minutes while running
- GET    /quizzes/{quiz_id}/invalid-entries  - Rejected join attempts
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status, Query

from quizroom.api.deps import get_current_teacher, get_quiz_service
from quizroom.models.user import User
from quizroom.schemas.common import ApiResponse, ok
from quizroom.schemas.quiz import (
    QuizCreateRequest,
    QuizUpdateRequest,
    QuizClassesRequest,
    AllowedStudentsRequest,
    QuizStatusRequest,
    TimeAdjustRequest,
    QuizResponse,
    QuizDetailResponse,
    QuizListResponse,
    QuizCreatedResponse,
    QuizClassesResponse,
    AllowedStudentsResponse,
    TimeAdjustResponse,
    InvalidEntryResponse,
)
from quizroom.services.quiz_service import QuizService


router = APIRouter(tags=["Quizzes"])


# ============================================================
# CREATE / LIST / GET
# ============================================================

@router.post(
    "/quizzes",
    response_model=ApiResponse[QuizCreatedResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a draft quiz",
)
async def create_quiz(
    request: QuizCreateRequest,
    current_teacher: User = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    created = await service.create_quiz(current_teacher.id, request)
    return ok(created, "Quiz created successfully")


@router.get(
    "/quizzes",
    response_model=ApiResponse[QuizListResponse],
    summary="List your quizzes",
)
async def list_quizzes(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    current_teacher: User = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    quizzes, total = await service.list_quizzes(current_teacher.id, skip, limit)
    return ok(QuizListResponse(quizzes=quizzes, total=total))


@router.get(
    "/quizzes/{quiz_id}",
    response_model=ApiResponse[QuizDetailResponse],
    summary="Get quiz detail",
    description="Quiz metadata, effective status, questions with answer keys, and access list.",
)
async def get_quiz(
    quiz_id: UUID,
    current_teacher: User = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    return ok(await service.get_quiz(quiz_id, current_teacher.id))


# ============================================================
# UPDATE / DELETE
# ============================================================

@router.patch(
    "/quizzes/{quiz_id}",
    response_model=ApiResponse[QuizResponse],
    summary="Update quiz",
)
async def update_quiz(
    quiz_id: UUID,
    request: QuizUpdateRequest,
    current_teacher: User = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    updated = await service.update_quiz(quiz_id, current_teacher.id, request)
    return ok(updated, "Quiz updated successfully")


@router.delete(
    "/quizzes/{quiz_id}",
    response_model=ApiResponse[None],
    summary="Delete quiz",
)
async def delete_quiz(
    quiz_id: UUID,
    current_teacher: User = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    await service.delete_quiz(quiz_id, current_teacher.id)
    return ok(None, "Quiz deleted successfully")


# ============================================================
# ACCESS LISTS
# ============================================================

@router.put(
    "/quizzes/{quiz_id}/classes",
    response_model=ApiResponse[QuizClassesResponse],
    summary="Replace allowed classes",
)
async def set_quiz_classes(
    quiz_id: UUID,
    request: QuizClassesRequest,
    current_teacher: User = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    result = await service.set_quiz_classes(quiz_id, current_teacher.id, request.class_ids)
    return ok(result, "Classes assigned successfully")


@router.post(
    "/quizzes/{quiz_id}/allowed-students",
    response_model=ApiResponse[AllowedStudentsResponse],
    summary="Invite individual students",
)
async def add_allowed_students(
    quiz_id: UUID,
    request: AllowedStudentsRequest,
    current_teacher: User = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    result = await service.add_allowed_students(quiz_id, current_teacher.id, request.student_ids)
    return ok(result, f"{result.added} student(s) added")


# ============================================================
# LIFECYCLE / TIME
# ============================================================

@router.patch(
    "/quizzes/{quiz_id}/status",
    response_model=ApiResponse[QuizResponse],
    summary="Change quiz status",
    description="""
    Moves the quiz forward: draft -> active -> started -> finished.

    Activating or starting requires at least one question and one
    assigned class. Starting stamps the shared start time.
    """,
)
async def set_quiz_status(
    quiz_id: UUID,
    request: QuizStatusRequest,
    current_teacher: User = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    quiz = await service.set_status(quiz_id, current_teacher.id, request.status.value)
    return ok(quiz, f"Quiz is now {quiz.status.value}")


@router.post(
    "/quizzes/{quiz_id}/adjust-time",
    response_model=ApiResponse[TimeAdjustResponse],
    summary="Adjust time of a running quiz",
)
async def adjust_time(
    quiz_id: UUID,
    request: TimeAdjustRequest,
    current_teacher: User = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    result = await service.adjust_time(quiz_id, current_teacher.id, request.adjustment)
    return ok(result, f"Quiz duration is now {result.new_duration} minutes")


@router.get(
    "/quizzes/{quiz_id}/invalid-entries",
    response_model=ApiResponse[List[InvalidEntryResponse]],
    summary="Rejected join attempts",
)
async def list_invalid_entries(
    quiz_id: UUID,
    current_teacher: User = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    return ok(await service.list_invalid_entries(quiz_id, current_teacher.id))
