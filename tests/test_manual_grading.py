import pytest

from quizroom.core.exceptions import NotFound, ValidationFailed
from quizroom.models import Attempt
from quizroom.models.quiz import QuizStatus
from quizroom.schemas.attempt import AnswerSubmitRequest, JoinRequest, StartExamRequest
from quizroom.services.access_gate import AccessGate
from quizroom.services.attempt_service import AttemptService
from quizroom.services.grading_service import GradingService

from conftest import mc_question, sa_question


@pytest.fixture
async def graded(seed, db, clock):
    """A started quiz where one student answered both questions and submitted."""
    teacher = await seed.teacher()
    student = await seed.student(user_id="S1", first_name="Grace", last_name="Hopper")
    klass = await seed.school_class(teacher, "Class C", [student])
    quiz = await seed.quiz(
        teacher,
        classes=[klass],
        questions=[mc_question(2), sa_question(5)],
        status=QuizStatus.STARTED,
    )
    joined = await AccessGate(db, clock).join(JoinRequest(room_code=quiz.room_code, student_id="S1"))
    attempts = AttemptService(db, clock)
    await attempts.start_exam(StartExamRequest(quiz_id=quiz.id, student_db_id=student.id))

    mc, sa = quiz.questions
    await attempts.submit_answer(AnswerSubmitRequest(attempt_id=joined.attempt_id, question_id=mc.id, answer="2", time_taken=20))
    await attempts.submit_answer(AnswerSubmitRequest(attempt_id=joined.attempt_id, question_id=sa.id, answer="Plants make food", time_taken=60))
    await attempts.finish_exam(joined.attempt_id)

    return {"quiz": quiz, "attempt_id": joined.attempt_id, "mc": mc, "sa": sa}


async def test_grade_above_cap_is_rejected_not_clamped(graded, db):
    service = GradingService(db)

    with pytest.raises(ValidationFailed, match=r"Score \(6\) cannot exceed maximum points \(5\)"):
        await service.manual_grade(graded["quiz"], graded["attempt_id"], graded["sa"].id, 6)

    detail = await service.student_result_detail(graded["quiz"], graded["attempt_id"])
    sa_detail = next(a for a in detail.answers if a.question_id == graded["sa"].id)
    assert sa_detail.points_awarded is None
    assert sa_detail.grade_state.value == "ungraded"


async def test_manual_grade_updates_score_and_pending(graded, db, clock):
    service = GradingService(db)

    before = await AttemptService(db, clock).get_result(graded["attempt_id"])
    assert before.score == 2
    assert before.has_manual_grading is True

    result = await service.manual_grade(graded["quiz"], graded["attempt_id"], graded["sa"].id, 4)
    assert result.points_awarded == 4
    assert result.is_correct is True
    assert result.score == 6
    assert result.pending_count == 0

    attempt = await db.get(Attempt, graded["attempt_id"])
    assert attempt.score == 6

    after = await AttemptService(db, clock).get_result(graded["attempt_id"])
    assert after.has_manual_grading is False


async def test_zero_grade_is_incorrect_not_pending(graded, db):
    result = await GradingService(db).manual_grade(graded["quiz"], graded["attempt_id"], graded["sa"].id, 0)
    assert result.is_correct is False
    assert result.points_awarded == 0
    assert result.pending_count == 0


async def test_only_short_answers_are_graded_manually(graded, db):
    with pytest.raises(ValidationFailed, match="short answer"):
        await GradingService(db).manual_grade(graded["quiz"], graded["attempt_id"], graded["mc"].id, 1)


async def test_unanswered_question_cannot_be_graded(seed, db, clock):
    teacher = await seed.teacher()
    student = await seed.student(user_id="S2")
    klass = await seed.school_class(teacher, "Class C", [student])
    quiz = await seed.quiz(teacher, classes=[klass], questions=[sa_question()], status=QuizStatus.STARTED)
    joined = await AccessGate(db, clock).join(JoinRequest(room_code=quiz.room_code, student_id="S2"))

    with pytest.raises(NotFound, match="not answered"):
        await GradingService(db).manual_grade(quiz, joined.attempt_id, quiz.questions[0].id, 1)


async def test_result_table_and_detail(graded, db):
    service = GradingService(db)

    table = await service.list_results(graded["quiz"])
    assert len(table.results) == 1
    row = table.results[0]
    assert row.student_name == "Grace Hopper"
    assert row.score == 2
    assert row.needs_grading == 1

    detail = await service.student_result_detail(graded["quiz"], graded["attempt_id"])
    assert [a.question_id for a in detail.answers] == [graded["mc"].id, graded["sa"].id]
    assert detail.answers[0].grade_state.value == "correct"
    assert detail.answers[0].correct_answer == "2"
    assert detail.pending_count == 1
