from sqlalchemy import Column, Integer, Float, Boolean, ForeignKey, DateTime, Enum, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
import enum

from .base import BaseModel


class AttemptStatus(enum.Enum):
    WAITING = "waiting"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    SUBMITTED = "submitted"


class Attempt(BaseModel):
    """
    One student's session against one quiz.

    The (student_id, quiz_id) unique constraint is what guarantees a
    single row per pair; a second join or start resumes the existing
    row. is_blocked is orthogonal to status.
    """
    __tablename__ = "attempts"
    __table_args__ = (
        UniqueConstraint("student_id", "quiz_id", name="uq_attempts_student_quiz"),
    )

    student_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    quiz_id = Column(Uuid(as_uuid=True), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)

    status = Column(
        Enum(AttemptStatus, name="attempt_status", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=AttemptStatus.WAITING,
        index=True
    )
    is_blocked = Column(Boolean, nullable=False, default=False)
    is_paused = Column(Boolean, nullable=False, default=False)

    # Timing
    started_at = Column(DateTime(timezone=True), nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)

    # Results (filled on submission, score recomputed on manual grading)
    score = Column(Float, nullable=True)
    total_points = Column(Float, nullable=True)

    version = Column(Integer, nullable=False, default=1)

    # Relationships
    student = relationship("User", back_populates="attempts")
    quiz = relationship("Quiz", back_populates="attempts")
    answers = relationship("Answer", back_populates="attempt", cascade="all, delete-orphan")

    __mapper_args__ = {"version_id_col": version}
