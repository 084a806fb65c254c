from sqlalchemy import Column, String, Integer, Float, ForeignKey, Text, Enum, Uuid
from sqlalchemy.orm import relationship
import enum

from .base import BaseModel, JSONType


class QuestionType(enum.Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    MULTIPLE_SELECTION = "multiple_selection"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"


# Stored in correct_answer for questions a teacher grades by hand
MANUAL_GRADING = "MANUAL_GRADING"


class Question(BaseModel):
    __tablename__ = "questions"

    quiz_id = Column(Uuid(as_uuid=True), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)

    # Question content
    question_type = Column(
        Enum(QuestionType, name="question_type", values_callable=lambda x: [e.value for e in x]),
        nullable=False
    )
    question_text = Column(Text, nullable=False)

    # [{"id": "1", "text": "...", "is_correct": true}, ...]; NULL for short_answer
    options = Column(JSONType, nullable=True)

    # Encoded answer key, derived from options (see services.grading)
    correct_answer = Column(String(500), nullable=False)

    # Metadata
    points = Column(Float, default=1, nullable=False)
    time_limit_seconds = Column(Integer, nullable=True)
    display_order = Column(Integer, default=0, nullable=False)

    # Relationships
    quiz = relationship("Quiz", back_populates="questions")
    answers = relationship("Answer", back_populates="question", cascade="all, delete-orphan")
