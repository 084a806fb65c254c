"""
Races between concurrent requests.

Each test makes the pre-insert lookup miss once, so the write lands on
the unique constraint (or the version counter) the way a concurrent
request would, and checks the fallback.
"""

import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm.exc import StaleDataError

from quizroom.core.security import create_access_token
from quizroom.models import Answer, Attempt, Quiz
from quizroom.models.quiz import QuizStatus
from quizroom.repositories.attempt_repo import AnswerRepository, AttemptRepository
from quizroom.repositories.quiz_repo import QuizRepository
from quizroom.schemas.attempt import AnswerSubmitRequest, ControlAction, JoinRequest, StartExamRequest
from quizroom.schemas.quiz import QuizCreateRequest
from quizroom.services import quiz_service
from quizroom.services.access_gate import AccessGate
from quizroom.services.attempt_service import AttemptService
from quizroom.services.quiz_service import QuizService

from conftest import mc_question


def miss_once(original):
    """Wrap a repository lookup so its first call reports nothing found."""
    calls = []

    async def lookup(self, *args):
        calls.append(args)
        if len(calls) == 1:
            return None
        return await original(self, *args)

    return lookup


@pytest.fixture
async def running(seed, db, clock):
    teacher = await seed.teacher()
    student = await seed.student(user_id="S1")
    klass = await seed.school_class(teacher, "Class C", [student])
    quiz = await seed.quiz(teacher, classes=[klass], questions=[mc_question(2)], status=QuizStatus.STARTED)
    return {
        "teacher_id": teacher.id,
        "student_id": student.id,
        "quiz": quiz,
        "quiz_id": quiz.id,
        "room_code": quiz.room_code,
        "question_id": quiz.questions[0].id,
    }


async def test_simultaneous_joins_share_one_attempt(running, db, clock, monkeypatch):
    gate = AccessGate(db, clock)
    first = await gate.join(JoinRequest(room_code=running["room_code"], student_id="S1"))

    monkeypatch.setattr(
        AttemptRepository,
        "get_by_student_and_quiz",
        miss_once(AttemptRepository.get_by_student_and_quiz),
    )
    second = await gate.join(JoinRequest(room_code=running["room_code"], student_id="S1"))

    assert second.attempt_id == first.attempt_id
    rows = (await db.execute(
        select(func.count(Attempt.id)).where(Attempt.quiz_id == running["quiz_id"])
    )).scalar()
    assert rows == 1


async def test_simultaneous_answers_keep_one_row(running, db, clock, monkeypatch):
    gate = AccessGate(db, clock)
    joined = await gate.join(JoinRequest(room_code=running["room_code"], student_id="S1"))
    service = AttemptService(db, clock)
    await service.start_exam(StartExamRequest(quiz_id=running["quiz_id"], student_db_id=running["student_id"]))

    await service.submit_answer(AnswerSubmitRequest(
        attempt_id=joined.attempt_id, question_id=running["question_id"], answer="1", time_taken=5,
    ))

    monkeypatch.setattr(AnswerRepository, "get_for_question", miss_once(AnswerRepository.get_for_question))
    await service.submit_answer(AnswerSubmitRequest(
        attempt_id=joined.attempt_id, question_id=running["question_id"], answer="2", time_taken=8,
    ))

    rows = (await db.execute(
        select(Answer.response, Answer.points_awarded, Answer.time_taken_seconds)
        .where(Answer.attempt_id == joined.attempt_id)
    )).all()
    assert [tuple(r) for r in rows] == [("2", 2.0, 8)]


async def test_room_code_taken_at_commit_is_retried(seed, db, clock, monkeypatch):
    teacher = await seed.teacher()
    teacher_id = teacher.id
    taken = (await seed.quiz(teacher)).room_code

    async def never_exists(self, room_code):
        return False

    chars = iter(taken + "ZZZZZZ")
    monkeypatch.setattr(QuizRepository, "room_code_exists", never_exists)
    monkeypatch.setattr(quiz_service.secrets, "choice", lambda alphabet: next(chars))

    created = await QuizService(db, clock).create_quiz(teacher_id, QuizCreateRequest(title="Second"))

    assert created.room_code == "ZZZZZZ"
    assert (await db.execute(select(func.count(Quiz.id)))).scalar() == 2


async def test_stale_attempt_write_is_detected(running, db, session_factory, clock):
    joined = await AccessGate(db, clock).join(JoinRequest(room_code=running["room_code"], student_id="S1"))
    quiz = running["quiz"]

    # this session still holds the attempt at its original version
    await db.get(Attempt, joined.attempt_id)

    async with session_factory() as other:
        await AttemptService(other, clock).control_attempt(quiz, joined.attempt_id, ControlAction.BLOCK)

    with pytest.raises(StaleDataError):
        await AttemptService(db, clock).control_attempt(quiz, joined.attempt_id, ControlAction.BLOCK)
    await db.rollback()


async def test_stale_write_maps_to_conflict_envelope(client, running, monkeypatch):
    async def lost_race(self, quiz, attempt_id, action):
        raise StaleDataError("UPDATE statement on table 'attempts' expected to update 1 row(s); 0 were matched.")

    monkeypatch.setattr(AttemptService, "control_attempt", lost_race)
    response = await client.post(
        f"/api/v1/quizzes/{running['quiz_id']}/attempts/{uuid.uuid4()}/control",
        json={"action": "pause"},
        headers={"Authorization": f"Bearer {create_access_token(running['teacher_id'])}"},
    )

    assert response.status_code == 409
    assert response.json() == {
        "success": False,
        "message": "This record was modified concurrently, please retry",
        "errors": None,
    }
