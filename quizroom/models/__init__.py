from quizroom.models.base import Base
from quizroom.models.user import User, UserRole, UserStatus
from quizroom.models.school_class import SchoolClass, class_students
from quizroom.models.quiz import Quiz, QuizStatus, quiz_classes, quiz_allowed_students
from quizroom.models.question import Question, QuestionType, MANUAL_GRADING
from quizroom.models.attempt import Attempt, AttemptStatus
from quizroom.models.answer import Answer
from quizroom.models.invalid_entry import InvalidEntry

__all__ = [
    "Base",
    "User",
    "UserRole",
    "UserStatus",
    "SchoolClass",
    "class_students",
    "Quiz",
    "QuizStatus",
    "quiz_classes",
    "quiz_allowed_students",
    "Question",
    "QuestionType",
    "MANUAL_GRADING",
    "Attempt",
    "AttemptStatus",
    "Answer",
    "InvalidEntry",
]
