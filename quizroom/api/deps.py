import logging
from uuid import UUID

from fastapi import HTTPException, Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from quizroom.core.clock import Clock, utcnow
from quizroom.core.security import decode_access_token
from quizroom.db.database import get_db
from quizroom.models import User, Quiz
from quizroom.models.user import UserRole
from quizroom.repositories.user_repo import UserRepository
from quizroom.services.access_gate import AccessGate
from quizroom.services.attempt_service import AttemptService
from quizroom.services.grading_service import GradingService
from quizroom.services.monitoring_service import MonitoringService
from quizroom.services.quiz_service import QuizService

logger = logging.getLogger(__name__)

# Security scheme for Swagger UI
security = HTTPBearer()


# =====================================================
# Clock
# =====================================================
def get_clock() -> Clock:
    """Wall clock used by every service; overridden in tests."""
    return utcnow


# =====================================================
# Get Current teacher
# =====================================================
async def get_current_teacher(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Dependency that validates the bearer token and returns the teacher.

    Raises:
        HTTPException 401: If token is invalid or the user doesn't exist
        HTTPException 403: If the user is not an active teacher
    """
    subject = decode_access_token(credentials.credentials)
    if subject is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"}
        )

    try:
        user_uuid = UUID(subject)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token subject",
            headers={"WWW-Authenticate": "Bearer"}
        )

    user = await UserRepository(db).get_by_id(user_uuid)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"}
        )

    if user.role != UserRole.TEACHER:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Teacher access required")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")

    return user


# =====================================================
# Owned quiz
# =====================================================
def get_quiz_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> QuizService:
    return QuizService(db, clock)


async def get_owned_quiz(
    quiz_id: UUID,
    current_teacher: User = Depends(get_current_teacher),
    service: QuizService = Depends(get_quiz_service),
) -> Quiz:
    """Resolve {quiz_id} for the calling teacher, 404 if it isn't theirs."""
    return await service.get_owned_quiz(quiz_id, current_teacher.id)


# =====================================================
# Service factories
# =====================================================
def get_access_gate(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AccessGate:
    return AccessGate(db, clock)


def get_attempt_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AttemptService:
    return AttemptService(db, clock)


def get_monitoring_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> MonitoringService:
    return MonitoringService(db, clock)


def get_grading_service(db: AsyncSession = Depends(get_db)) -> GradingService:
    return GradingService(db)
