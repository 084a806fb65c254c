"""
Grading

Pure scoring logic, no database access.

Answer-key encoding by question type:
- multiple_choice / true_false: id of the single correct option
- multiple_selection: correct option ids, sorted and comma-joined
- short_answer: the MANUAL_GRADING sentinel, never auto-scored

A grade is one of three variants:

    Ungraded            points_awarded=NULL, is_correct=NULL
    Correct(points)     points_awarded=points, is_correct=True
    Incorrect           points_awarded=0, is_correct=False

so "pending manual grading" can never be mistaken for a zero.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from quizroom.core.exceptions import ValidationFailed
from quizroom.models.question import MANUAL_GRADING, QuestionType

OBJECTIVE_TYPES = frozenset({
    QuestionType.MULTIPLE_CHOICE,
    QuestionType.MULTIPLE_SELECTION,
    QuestionType.TRUE_FALSE,
})


# ============================================================
# Grade variants
# ============================================================

@dataclass(frozen=True)
class Ungraded:
    points_awarded = None
    is_correct = None


@dataclass(frozen=True)
class Correct:
    points: float

    @property
    def points_awarded(self) -> float:
        return self.points

    @property
    def is_correct(self) -> bool:
        return True


@dataclass(frozen=True)
class Incorrect:
    points_awarded = 0.0
    is_correct = False


Grade = Union[Ungraded, Correct, Incorrect]

UNGRADED = Ungraded()
INCORRECT = Incorrect()


def grade_from_columns(points_awarded: Optional[float], is_correct: Optional[bool]) -> Grade:
    """Rebuild a Grade from the two nullable answer columns."""
    if points_awarded is None:
        return UNGRADED
    if is_correct:
        return Correct(points_awarded)
    return INCORRECT


# ============================================================
# Option validation and answer-key encoding
# ============================================================

def _id_sort_key(option_id: str):
    # numeric ids sort numerically so "10" comes after "9"
    return (0, int(option_id), "") if option_id.isdigit() else (1, 0, option_id)


def canonical_selection(option_ids: Iterable[Any]) -> str:
    """Sorted, comma-joined, de-duplicated option ids."""
    ids = {str(i).strip() for i in option_ids if str(i).strip()}
    return ",".join(sorted(ids, key=_id_sort_key))


def normalize_options(
    question_type: QuestionType,
    options: Optional[Sequence[Dict[str, Any]]],
) -> Optional[List[Dict[str, Any]]]:
    """
    Validate the option list for a question type and give every option
    a string id. Returns None for short_answer.

    Raises:
        ValidationFailed: if the options don't fit the question type
    """
    if question_type == QuestionType.SHORT_ANSWER:
        if options:
            raise ValidationFailed("Short answer questions cannot have options")
        return None

    if not options or len(options) < 2:
        raise ValidationFailed("At least two options are required")

    normalized = []
    seen = set()
    for position, option in enumerate(options, start=1):
        raw_id = option.get("id")
        option_id = str(raw_id).strip() if raw_id is not None else str(position)
        if not option_id:
            option_id = str(position)
        if option_id in seen:
            raise ValidationFailed(f"Duplicate option id: {option_id}")
        seen.add(option_id)

        text = str(option.get("text", "")).strip()
        if not text:
            raise ValidationFailed("Option text cannot be empty")

        normalized.append({
            "id": option_id,
            "text": text,
            "is_correct": bool(option.get("is_correct", False)),
        })

    correct_count = sum(1 for o in normalized if o["is_correct"])

    if question_type == QuestionType.TRUE_FALSE and len(normalized) != 2:
        raise ValidationFailed("True/false questions need exactly two options")

    if question_type in (QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE):
        if correct_count != 1:
            raise ValidationFailed("Exactly one option must be marked correct")
    elif correct_count < 1:
        raise ValidationFailed("At least one option must be marked correct")

    return normalized


def encode_correct_answer(
    question_type: QuestionType,
    options: Optional[Sequence[Dict[str, Any]]],
) -> str:
    """Derive the stored answer key from already-normalized options."""
    if question_type == QuestionType.SHORT_ANSWER:
        return MANUAL_GRADING

    correct_ids = [o["id"] for o in options or [] if o.get("is_correct")]

    if question_type == QuestionType.MULTIPLE_SELECTION:
        return canonical_selection(correct_ids)

    return correct_ids[0]


# ============================================================
# Responses
# ============================================================

def normalize_response(question_type: QuestionType, raw: Any) -> Any:
    """
    Coerce a submitted answer into its stored form.

    - multiple_choice / true_false: option id string
    - multiple_selection: sorted list of option id strings; a
      comma-separated string is accepted as well
    - short_answer: free text

    Raises:
        ValidationFailed: if the shape doesn't match the question type
    """
    if raw is None:
        raise ValidationFailed("Answer is required")

    if question_type == QuestionType.MULTIPLE_SELECTION:
        if isinstance(raw, str):
            items = raw.split(",")
        elif isinstance(raw, (list, tuple, set)):
            items = list(raw)
        else:
            raise ValidationFailed("Multiple selection answers must be a list of option ids")
        if any(isinstance(i, (list, dict)) for i in items):
            raise ValidationFailed("Multiple selection answers must be a list of option ids")
        canonical = canonical_selection(items)
        return canonical.split(",") if canonical else []

    if isinstance(raw, (list, dict, bool)):
        raise ValidationFailed("Answer must be a single value for this question type")

    if question_type == QuestionType.SHORT_ANSWER:
        return str(raw)

    return str(raw).strip()


def grade_response(
    question_type: QuestionType,
    correct_answer: str,
    points: float,
    response: Any,
) -> Grade:
    """
    Score a normalized response against the stored answer key.

    Objective types are all-or-nothing. Short answers stay Ungraded no
    matter what was submitted.
    """
    if question_type == QuestionType.SHORT_ANSWER or correct_answer == MANUAL_GRADING:
        return UNGRADED

    if question_type == QuestionType.MULTIPLE_SELECTION:
        submitted = canonical_selection(response or [])
        expected = canonical_selection(correct_answer.split(","))
        return Correct(points) if submitted and submitted == expected else INCORRECT

    return Correct(points) if str(response) == str(correct_answer) else INCORRECT


def manual_grade(points: float, max_points: float) -> Grade:
    """
    A teacher-assigned grade. Out-of-range scores are rejected, not clamped.

    Raises:
        ValidationFailed: if points < 0 or points > max_points
    """
    if points < 0:
        raise ValidationFailed("Score cannot be negative")
    if points > max_points:
        raise ValidationFailed(
            f"Score ({points:g}) cannot exceed maximum points ({max_points:g})"
        )
    return Correct(points) if points > 0 else INCORRECT


# ============================================================
# Aggregation
# ============================================================

@dataclass
class ScoreSummary:
    score: float
    total_points: float
    total_questions: int
    answered_count: int
    correct_count: int
    incorrect_count: int
    pending_count: int

    @property
    def has_pending_manual_grading(self) -> bool:
        return self.pending_count > 0


def summarize(questions: Sequence[Any], answers: Sequence[Any]) -> ScoreSummary:
    """
    Aggregate an attempt's answers.

    score is the sum of non-null points_awarded; unanswered and
    not-yet-graded questions contribute nothing. Answers whose question
    no longer exists are ignored.
    """
    questions_by_id = {q.id: q for q in questions}

    score = 0.0
    answered = correct = incorrect = pending = 0
    for answer in answers:
        question = questions_by_id.get(answer.question_id)
        if question is None:
            continue
        answered += 1
        grade = grade_from_columns(answer.points_awarded, answer.is_correct)
        if isinstance(grade, Ungraded):
            if question.question_type == QuestionType.SHORT_ANSWER:
                pending += 1
            continue
        score += grade.points_awarded
        if isinstance(grade, Correct):
            correct += 1
        else:
            incorrect += 1

    return ScoreSummary(
        score=score,
        total_points=sum(q.points for q in questions),
        total_questions=len(questions),
        answered_count=answered,
        correct_count=correct,
        incorrect_count=incorrect,
        pending_count=pending,
    )
