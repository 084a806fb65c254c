from sqlalchemy import Column, String, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from .base import BaseModel


class InvalidEntry(BaseModel):
    """Append-only log of join attempts rejected because the quiz was not open."""
    __tablename__ = "invalid_entries"

    quiz_id = Column(Uuid(as_uuid=True), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    student_identifier = Column(String(50), nullable=False)

    quiz = relationship("Quiz", back_populates="invalid_entries")
