import pytest
from sqlalchemy import func, select

from quizroom.core.config import settings
from quizroom.core.exceptions import AccessDenied, NotFound, StateConflict, ValidationFailed
from quizroom.models import Answer
from quizroom.models.quiz import QuizStatus
from quizroom.schemas.attempt import (
    AnswerSubmitRequest,
    ControlAction,
    JoinRequest,
    StartExamRequest,
)
from quizroom.services.access_gate import AccessGate
from quizroom.services.attempt_service import AttemptService
from quizroom.services.quiz_service import QuizService

from conftest import mc_question, ms_question, sa_question, tf_question


@pytest.fixture
async def exam(seed, db, clock):
    """An active quiz with one of each question type and one joined student."""
    teacher = await seed.teacher()
    student = await seed.student(user_id="S1")
    klass = await seed.school_class(teacher, "Class C", [student])
    quiz = await seed.quiz(
        teacher,
        classes=[klass],
        questions=[mc_question(2), ms_question(3), tf_question(1), sa_question(5)],
        status=QuizStatus.ACTIVE,
    )
    joined = await AccessGate(db, clock).join(JoinRequest(room_code=quiz.room_code, student_id="S1"))
    questions = {q.question_type.value: q for q in quiz.questions}
    return {
        "teacher": teacher,
        "student": student,
        "quiz": quiz,
        "attempt_id": joined.attempt_id,
        "questions": questions,
        "service": AttemptService(db, clock),
    }


async def _start(exam, db, clock):
    await QuizService(db, clock).set_status(exam["quiz"].id, exam["teacher"].id, "started")
    return await exam["service"].start_exam(
        StartExamRequest(quiz_id=exam["quiz"].id, student_db_id=exam["student"].id)
    )


def _answer(exam, qtype, answer, time_taken=10):
    return AnswerSubmitRequest(
        attempt_id=exam["attempt_id"],
        question_id=exam["questions"][qtype].id,
        answer=answer,
        time_taken=time_taken,
    )


async def _answer_count(db, attempt_id):
    return (await db.execute(
        select(func.count(Answer.id)).where(Answer.attempt_id == attempt_id)
    )).scalar()


# ============================================================
# Start / resume
# ============================================================

async def test_cannot_start_before_quiz_starts(exam):
    with pytest.raises(StateConflict, match="not started"):
        await exam["service"].start_exam(
            StartExamRequest(quiz_id=exam["quiz"].id, student_db_id=exam["student"].id)
        )


async def test_waiting_attempt_on_ended_quiz(exam, db, clock):
    quizzes = QuizService(db, clock)
    await quizzes.set_status(exam["quiz"].id, exam["teacher"].id, "started")
    await quizzes.set_status(exam["quiz"].id, exam["teacher"].id, "finished")

    with pytest.raises(StateConflict, match="Quiz has ended"):
        await exam["service"].start_exam(
            StartExamRequest(quiz_id=exam["quiz"].id, student_db_id=exam["student"].id)
        )


async def test_start_without_join_is_not_found(exam, seed, db, clock):
    stranger = await seed.student(user_id="S9")
    with pytest.raises(NotFound):
        await exam["service"].start_exam(StartExamRequest(quiz_id=exam["quiz"].id, student_db_id=stranger.id))


async def test_start_then_resume(exam, db, clock):
    first = await _start(exam, db, clock)
    assert first.status == "started"
    assert first.started_at == clock()
    assert first.remaining_seconds == 30 * 60

    clock.advance(minutes=4)
    again = await exam["service"].start_exam(
        StartExamRequest(quiz_id=exam["quiz"].id, student_db_id=exam["student"].id)
    )
    assert again.status == "resumed"
    assert again.attempt_id == first.attempt_id
    assert again.remaining_seconds == 26 * 60


async def test_submitted_attempt_cannot_restart(exam, db, clock):
    await _start(exam, db, clock)
    await exam["service"].finish_exam(exam["attempt_id"])

    with pytest.raises(StateConflict, match="already submitted"):
        await exam["service"].start_exam(
            StartExamRequest(quiz_id=exam["quiz"].id, student_db_id=exam["student"].id)
        )


async def test_blocked_attempt_rejects_start_and_answers(exam, db, clock):
    await _start(exam, db, clock)
    await exam["service"].control_attempt(exam["quiz"], exam["attempt_id"], ControlAction.BLOCK)

    with pytest.raises(AccessDenied):
        await exam["service"].start_exam(
            StartExamRequest(quiz_id=exam["quiz"].id, student_db_id=exam["student"].id)
        )
    with pytest.raises(AccessDenied):
        await exam["service"].submit_answer(_answer(exam, "multiple_choice", "2"))
    with pytest.raises(AccessDenied):
        await exam["service"].finish_exam(exam["attempt_id"])


# ============================================================
# Answers
# ============================================================

async def test_answers_are_graded_immediately(exam, db, clock):
    await _start(exam, db, clock)
    service = exam["service"]

    await service.submit_answer(_answer(exam, "multiple_choice", "2"))
    await service.submit_answer(_answer(exam, "multiple_selection", ["a"]))
    await service.submit_answer(_answer(exam, "short_answer", "Light becomes sugar"))

    result = await service.get_result(exam["attempt_id"])
    assert result.score == 2
    assert result.total_points == 11
    assert result.correct_answers == 1
    assert result.has_manual_grading is True
    assert result.pending_count == 1


async def test_resubmitting_overwrites_without_duplicates(exam, db, clock):
    await _start(exam, db, clock)
    service = exam["service"]

    await service.submit_answer(_answer(exam, "multiple_selection", ["a", "b", "c"], time_taken=5))
    await service.submit_answer(_answer(exam, "multiple_selection", ["c", "a"], time_taken=12))

    assert await _answer_count(db, exam["attempt_id"]) == 1
    answer = (await db.execute(select(Answer).where(Answer.attempt_id == exam["attempt_id"]))).scalar_one()
    assert answer.points_awarded == 3
    assert answer.is_correct is True
    assert answer.time_taken_seconds == 12
    assert answer.response == ["a", "c"]


async def test_short_answer_stays_ungraded(exam, db, clock):
    await _start(exam, db, clock)
    await exam["service"].submit_answer(_answer(exam, "short_answer", "anything"))

    answer = (await db.execute(select(Answer).where(Answer.attempt_id == exam["attempt_id"]))).scalar_one()
    assert answer.points_awarded is None
    assert answer.is_correct is None


async def test_answer_before_start_is_rejected(exam):
    with pytest.raises(StateConflict, match="not been started"):
        await exam["service"].submit_answer(_answer(exam, "multiple_choice", "2"))


async def test_paused_attempt_cannot_answer(exam, db, clock, monkeypatch):
    await _start(exam, db, clock)
    service = exam["service"]
    await service.control_attempt(exam["quiz"], exam["attempt_id"], ControlAction.PAUSE)

    with pytest.raises(StateConflict, match="paused"):
        await service.submit_answer(_answer(exam, "true_false", "1"))

    monkeypatch.setattr(settings, "REJECT_ANSWERS_WHILE_PAUSED", False)
    saved = await service.submit_answer(_answer(exam, "true_false", "1"))
    assert saved.saved is True


async def test_paused_attempt_cannot_finish(exam, db, clock, monkeypatch):
    await _start(exam, db, clock)
    service = exam["service"]
    await service.control_attempt(exam["quiz"], exam["attempt_id"], ControlAction.PAUSE)

    with pytest.raises(StateConflict, match="paused by the instructor"):
        await service.finish_exam(exam["attempt_id"])
    assert (await service.get_attempt_status(exam["attempt_id"])).status.value == "paused"

    monkeypatch.setattr(settings, "REJECT_ANSWERS_WHILE_PAUSED", False)
    finished = await service.finish_exam(exam["attempt_id"])
    assert finished.status.value == "submitted"


async def test_answer_after_deadline_is_rejected(exam, db, clock):
    await _start(exam, db, clock)
    clock.advance(minutes=31)

    with pytest.raises(StateConflict, match="no longer accepting"):
        await exam["service"].submit_answer(_answer(exam, "multiple_choice", "2"))
    assert exam["quiz"].status == QuizStatus.FINISHED


async def test_malformed_and_foreign_answers(exam, db, clock, seed):
    await _start(exam, db, clock)
    service = exam["service"]

    with pytest.raises(ValidationFailed):
        await service.submit_answer(_answer(exam, "multiple_choice", ["1", "2"]))

    other_quiz = await seed.quiz(
        exam["teacher"],
        classes=[exam["quiz"].allowed_classes[0]],
        questions=[tf_question()],
    )
    with pytest.raises(NotFound):
        await service.submit_answer(AnswerSubmitRequest(
            attempt_id=exam["attempt_id"],
            question_id=other_quiz.questions[0].id,
            answer="1",
        ))


# ============================================================
# Finish
# ============================================================

async def test_finish_snapshots_score(exam, db, clock):
    await _start(exam, db, clock)
    service = exam["service"]
    await service.submit_answer(_answer(exam, "multiple_choice", "2"))
    await service.submit_answer(_answer(exam, "true_false", "2"))
    clock.advance(minutes=7)

    finished = await service.finish_exam(exam["attempt_id"])

    assert finished.status.value == "submitted"
    assert finished.score == 2
    assert finished.total_points == 11
    assert finished.submitted_at == clock()

    with pytest.raises(StateConflict):
        await service.finish_exam(exam["attempt_id"])
    with pytest.raises(StateConflict):
        await service.submit_answer(_answer(exam, "multiple_choice", "2"))


async def test_finish_is_allowed_after_deadline(exam, db, clock):
    await _start(exam, db, clock)
    clock.advance(minutes=45)

    finished = await exam["service"].finish_exam(exam["attempt_id"])
    assert finished.status.value == "submitted"


# ============================================================
# Teacher control
# ============================================================

async def test_pause_resume_and_status_poll(exam, db, clock):
    await _start(exam, db, clock)
    service = exam["service"]

    paused = await service.control_attempt(exam["quiz"], exam["attempt_id"], ControlAction.PAUSE)
    assert paused.status.value == "paused" and paused.is_paused

    polled = await service.get_attempt_status(exam["attempt_id"])
    assert polled.is_paused is True
    assert polled.is_blocked is False

    resumed = await service.control_attempt(exam["quiz"], exam["attempt_id"], ControlAction.RESUME)
    assert resumed.status.value == "in_progress" and not resumed.is_paused

    with pytest.raises(StateConflict):
        await service.control_attempt(exam["quiz"], exam["attempt_id"], ControlAction.RESUME)


async def test_waiting_attempt_cannot_be_paused_but_can_be_blocked(exam):
    service = exam["service"]
    with pytest.raises(StateConflict):
        await service.control_attempt(exam["quiz"], exam["attempt_id"], ControlAction.PAUSE)

    blocked = await service.control_attempt(exam["quiz"], exam["attempt_id"], ControlAction.BLOCK)
    assert blocked.is_blocked is True
    assert blocked.status.value == "waiting"

    unblocked = await service.control_attempt(exam["quiz"], exam["attempt_id"], ControlAction.UNBLOCK)
    assert unblocked.is_blocked is False


async def test_submitted_attempt_cannot_be_paused_or_blocked(exam, db, clock):
    await _start(exam, db, clock)
    service = exam["service"]
    await service.finish_exam(exam["attempt_id"])

    for action in (ControlAction.PAUSE, ControlAction.BLOCK):
        with pytest.raises(StateConflict, match="submitted"):
            await service.control_attempt(exam["quiz"], exam["attempt_id"], action)


async def test_exam_questions_hide_answer_keys(exam, db, clock):
    await _start(exam, db, clock)
    questions = await exam["service"].get_exam_questions(exam["quiz"].id)

    assert {q.id for q in questions} == {q.id for q in exam["quiz"].questions}
    for question in questions:
        dumped = question.model_dump()
        assert "correct_answer" not in dumped
        for option in dumped["options"] or []:
            assert set(option) == {"id", "text"}
