from fastapi import APIRouter
from quizroom.api.v1.endpoints import quizzes, questions, monitoring, exam

# ============================================================
# Main API v1 Router
# ============================================================

api_router = APIRouter()

# Teacher routes define their own prefixes (/quizzes, /quizzes/{id}/...)
api_router.include_router(
    quizzes.router,
    prefix=""
)

api_router.include_router(
    questions.router,
    prefix=""
)

api_router.include_router(
    monitoring.router,
    prefix=""
)

# Student exam runner at /exam
api_router.include_router(
    exam.router,
    prefix="/exam"
)
