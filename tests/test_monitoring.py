from quizroom.models import Attempt
from quizroom.models.quiz import QuizStatus
from quizroom.schemas.attempt import AnswerSubmitRequest, ControlAction, JoinRequest, StartExamRequest
from quizroom.services.access_gate import AccessGate
from quizroom.services.attempt_service import AttemptService
from quizroom.services.monitoring_service import MonitoringService
from quizroom.services.quiz_service import QuizService

from conftest import mc_question, tf_question


async def test_live_monitor_rows_and_counts(seed, db, clock):
    teacher = await seed.teacher()
    fast = await seed.student(user_id="S1", first_name="Fast")
    slow = await seed.student(user_id="S2", first_name="Slow")
    idle = await seed.student(user_id="S3", first_name="Idle")
    rogue = await seed.student(user_id="S4", first_name="Rogue")
    klass = await seed.school_class(teacher, "Class C", [fast, slow, idle, rogue])
    quiz = await seed.quiz(teacher, classes=[klass], questions=[mc_question(2), tf_question(1)], status=QuizStatus.ACTIVE)

    gate = AccessGate(db, clock)
    joined = {}
    for student in (fast, slow, idle, rogue):
        joined[student.user_id] = (await gate.join(JoinRequest(room_code=quiz.room_code, student_id=student.user_id))).attempt_id

    await QuizService(db, clock).set_status(quiz.id, teacher.id, "started")

    attempts = AttemptService(db, clock)
    mc, tf = quiz.questions
    for student in (fast, slow, rogue):
        await attempts.start_exam(StartExamRequest(quiz_id=quiz.id, student_db_id=student.id))

    # fast: both right, submitted
    await attempts.submit_answer(AnswerSubmitRequest(attempt_id=joined["S1"], question_id=mc.id, answer="2", time_taken=15))
    await attempts.submit_answer(AnswerSubmitRequest(attempt_id=joined["S1"], question_id=tf.id, answer="1", time_taken=5))
    clock.advance(minutes=2)
    await attempts.finish_exam(joined["S1"])

    # slow: one right, one wrong, paused
    await attempts.submit_answer(AnswerSubmitRequest(attempt_id=joined["S2"], question_id=mc.id, answer="2", time_taken=40))
    await attempts.submit_answer(AnswerSubmitRequest(attempt_id=joined["S2"], question_id=tf.id, answer="2", time_taken=30))
    await attempts.control_attempt(quiz, joined["S2"], ControlAction.PAUSE)

    # rogue: blocked
    await attempts.control_attempt(quiz, joined["S4"], ControlAction.BLOCK)

    clock.advance(minutes=3)
    versions_before = {a.id: a.version for a in [await db.get(Attempt, i) for i in joined.values()]}

    snapshot = await MonitoringService(db, clock).live_monitor(quiz)

    assert snapshot.total_questions == 2
    assert snapshot.remaining_seconds == 25 * 60
    assert snapshot.counts == {
        "Waiting": 1,
        "In Progress": 0,
        "Paused": 1,
        "Submitted": 1,
        "Blocked": 1,
        "Total": 4,
    }

    rows = {r.student_id: r for r in snapshot.students}
    assert snapshot.students[0].student_id == "S1"

    assert rows["S1"].status_label.value == "Submitted"
    assert rows["S1"].percentage == 100.0
    assert rows["S1"].total_time_spent == 20
    assert rows["S1"].elapsed_seconds == 120

    assert rows["S2"].status_label.value == "Paused"
    assert rows["S2"].answered_count == 2
    assert rows["S2"].correct_count == 1
    assert rows["S2"].incorrect_count == 1
    assert rows["S2"].percentage == 50.0
    assert rows["S2"].total_time_spent == 70
    assert rows["S2"].elapsed_seconds == 300

    assert rows["S3"].status_label.value == "Waiting"
    assert rows["S3"].percentage == 0.0
    assert rows["S4"].status_label.value == "Blocked"

    # read-only: no attempt row was written by the poll
    versions_after = {a.id: a.version for a in [await db.get(Attempt, i) for i in joined.values()]}
    assert versions_after == versions_before


async def test_monitor_poll_auto_finishes_expired_quiz(seed, db, clock):
    teacher = await seed.teacher()
    klass = await seed.school_class(teacher, "Class C")
    quiz = await seed.quiz(teacher, classes=[klass], duration_minutes=5, status=QuizStatus.STARTED)
    clock.advance(minutes=6)

    snapshot = await MonitoringService(db, clock).live_monitor(quiz)
    assert snapshot.quiz_status.value == "finished"
    assert snapshot.remaining_seconds == 0
    assert snapshot.students == []
    assert snapshot.counts["Total"] == 0
