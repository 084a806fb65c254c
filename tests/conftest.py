import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from quizroom.api.deps import get_clock
from quizroom.core.security import create_access_token
from quizroom.db.database import Base, get_db
from quizroom.main import app
from quizroom.models import SchoolClass, User, UserRole, UserStatus, class_students
from quizroom.models.quiz import QuizStatus
from quizroom.schemas.quiz import QuestionCreateRequest, QuizCreateRequest
from quizroom.services.quiz_service import QuizService
from quizroom.services.quiz_state import QuizStateMachine

T0 = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Pinned wall clock; tests move it forward explicitly."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# ============================================================
# Question templates
# ============================================================

def mc_question(points: float = 2) -> QuestionCreateRequest:
    # option ids default to position: correct answer is "2"
    return QuestionCreateRequest(
        question_text="What is 2 + 2?",
        question_type="multiple_choice",
        options=[{"text": "3"}, {"text": "4", "is_correct": True}, {"text": "5"}],
        points=points,
    )


def ms_question(points: float = 3) -> QuestionCreateRequest:
    # correct answer is "a,c"
    return QuestionCreateRequest(
        question_text="Which are prime?",
        question_type="multiple_selection",
        options=[
            {"id": "a", "text": "2", "is_correct": True},
            {"id": "b", "text": "4"},
            {"id": "c", "text": "5", "is_correct": True},
        ],
        points=points,
    )


def tf_question(points: float = 1) -> QuestionCreateRequest:
    # correct answer is "1"
    return QuestionCreateRequest(
        question_text="The earth orbits the sun.",
        question_type="true_false",
        options=[{"text": "True", "is_correct": True}, {"text": "False"}],
        points=points,
    )


def sa_question(points: float = 5) -> QuestionCreateRequest:
    return QuestionCreateRequest(
        question_text="Explain photosynthesis.",
        question_type="short_answer",
        points=points,
    )


# ============================================================
# Database
# ============================================================

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FakeClock()


# ============================================================
# Seed data
# ============================================================

class Seeder:
    """Creates directory rows and quizzes through the real services."""

    def __init__(self, db: AsyncSession, clock: FakeClock):
        self.db = db
        self.clock = clock
        self._counter = 0

    async def user(
        self,
        role: UserRole = UserRole.STUDENT,
        user_id: Optional[str] = None,
        first_name: str = "Test",
        last_name: Optional[str] = None,
        status: UserStatus = UserStatus.ACTIVE,
    ) -> User:
        self._counter += 1
        user = User(
            user_id=user_id or f"{role.value[:1].upper()}{self._counter:04d}",
            first_name=first_name,
            last_name=last_name or f"User{self._counter}",
            role=role,
            status=status,
        )
        self.db.add(user)
        await self.db.commit()
        return user

    async def teacher(self, **kwargs) -> User:
        return await self.user(role=UserRole.TEACHER, **kwargs)

    async def student(self, **kwargs) -> User:
        return await self.user(role=UserRole.STUDENT, **kwargs)

    async def school_class(self, teacher: User, name: str = "Class A", students: Iterable[User] = ()) -> SchoolClass:
        klass = SchoolClass(name=name, teacher_id=teacher.id)
        self.db.add(klass)
        await self.db.commit()
        rows = [{"class_id": klass.id, "student_id": s.id} for s in students]
        if rows:
            await self.db.execute(class_students.insert(), rows)
            await self.db.commit()
        return klass

    async def quiz(
        self,
        teacher: User,
        classes: Iterable[SchoolClass] = (),
        questions: Optional[List[QuestionCreateRequest]] = None,
        duration_minutes: int = 30,
        status: QuizStatus = QuizStatus.DRAFT,
    ):
        service = QuizService(self.db, self.clock)
        created = await service.create_quiz(
            teacher.id,
            QuizCreateRequest(
                title="Unit Test Quiz",
                duration_minutes=duration_minutes,
                class_ids=[c.id for c in classes],
            ),
        )
        for question in questions if questions is not None else [mc_question()]:
            await service.add_question(created.id, teacher.id, question)

        quiz = await service.get_owned_quiz(created.id, teacher.id)
        machine = QuizStateMachine(self.db, self.clock)
        for step in (QuizStatus.ACTIVE, QuizStatus.STARTED, QuizStatus.FINISHED):
            if _rank(step) > _rank(status):
                break
            await machine.transition(quiz, step)
        return quiz


def _rank(status: QuizStatus) -> int:
    return [QuizStatus.DRAFT, QuizStatus.ACTIVE, QuizStatus.STARTED, QuizStatus.FINISHED].index(status)


@pytest.fixture
def seed(db, clock):
    return Seeder(db, clock)


# ============================================================
# HTTP client
# ============================================================

@pytest_asyncio.fixture
async def client(session_factory, clock):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}
