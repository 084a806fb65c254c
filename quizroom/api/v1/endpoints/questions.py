"""
Question Endpoints

Endpoints:
----------
- GET    /quizzes/{quiz_id}/questions                - List questions (with answer keys)
- POST   /quizzes/{quiz_id}/questions                - Add a question
- PATCH  /quizzes/{quiz_id}/questions/{question_id}  - Edit a question
- DELETE /quizzes/{quiz_id}/questions/{question_id}  - Remove a question
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status

from quizroom.api.deps import get_current_teacher, get_quiz_service
from quizroom.models.user import User
from quizroom.schemas.common import ApiResponse, ok
from quizroom.schemas.quiz import QuestionCreateRequest, QuestionUpdateRequest, QuestionResponse
from quizroom.services.quiz_service import QuizService

router = APIRouter(tags=["Questions"])


@router.get(
    "/quizzes/{quiz_id}/questions",
    response_model=ApiResponse[List[QuestionResponse]],
    summary="List questions",
)
async def list_questions(
    quiz_id: UUID,
    current_teacher: User = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    return ok(await service.list_questions(quiz_id, current_teacher.id))


@router.post(
    "/quizzes/{quiz_id}/questions",
    response_model=ApiResponse[QuestionResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Add a question",
    description="""
    Options are validated per type:
    - multiple_choice / true_false: exactly one correct option
    - multiple_selection: at least one correct option
    - short_answer: no options, graded manually
    """,
)
async def add_question(
    quiz_id: UUID,
    request: QuestionCreateRequest,
    current_teacher: User = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    question = await service.add_question(quiz_id, current_teacher.id, request)
    return ok(question, "Question added successfully")


@router.patch(
    "/quizzes/{quiz_id}/questions/{question_id}",
    response_model=ApiResponse[QuestionResponse],
    summary="Edit a question",
    description="Existing answers keep the grade they were given when submitted.",
)
async def update_question(
    quiz_id: UUID,
    question_id: UUID,
    request: QuestionUpdateRequest,
    current_teacher: User = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    question = await service.update_question(quiz_id, question_id, current_teacher.id, request)
    return ok(question, "Question updated successfully")


@router.delete(
    "/quizzes/{quiz_id}/questions/{question_id}",
    response_model=ApiResponse[None],
    summary="Delete a question",
)
async def delete_question(
    quiz_id: UUID,
    question_id: UUID,
    current_teacher: User = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
):
    await service.delete_question(quiz_id, question_id, current_teacher.id)
    return ok(None, "Question deleted successfully")
