from quizroom.repositories.base import BaseRepository
from quizroom.repositories.user_repo import UserRepository, SchoolClassRepository
from quizroom.repositories.quiz_repo import QuizRepository, QuestionRepository
from quizroom.repositories.attempt_repo import (
    AttemptRepository,
    AnswerRepository,
    InvalidEntryRepository,
)

__all__ = [
    "BaseRepository",
    "UserRepository",
    "SchoolClassRepository",
    "QuizRepository",
    "QuestionRepository",
    "AttemptRepository",
    "AnswerRepository",
    "InvalidEntryRepository",
]
