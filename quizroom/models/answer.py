from sqlalchemy import Column, Integer, Float, Boolean, ForeignKey, DateTime, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from quizroom.core.clock import utcnow
from .base import BaseModel, JSONType


class Answer(BaseModel):
    """
    A student's response to one question within one attempt.

    points_awarded / is_correct are NULL until the answer is graded;
    NULL is "pending", never "zero". services.grading.Grade is the
    typed view over these two columns.
    """
    __tablename__ = "answers"
    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_answers_attempt_question"),
    )

    attempt_id = Column(Uuid(as_uuid=True), ForeignKey("attempts.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Uuid(as_uuid=True), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)

    # Option id, list of option ids, or free text
    response = Column(JSONType, nullable=False)

    points_awarded = Column(Float, nullable=True)
    is_correct = Column(Boolean, nullable=True)

    # Timing
    time_taken_seconds = Column(Integer, nullable=False, default=0)
    answered_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    attempt = relationship("Attempt", back_populates="answers")
    question = relationship("Question", back_populates="answers")
