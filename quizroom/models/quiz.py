from sqlalchemy import Column, String, Integer, ForeignKey, Text, DateTime, Enum, Table, Uuid
from sqlalchemy.orm import relationship
import enum

from quizroom.db.database import Base
from .base import BaseModel


class QuizStatus(enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    STARTED = "started"
    FINISHED = "finished"


# Classes whose students may join the quiz
quiz_classes = Table(
    "quiz_classes",
    Base.metadata,
    Column("quiz_id", Uuid(as_uuid=True), ForeignKey("quizzes.id", ondelete="CASCADE"), primary_key=True),
    Column("class_id", Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True),
)

# Individually invited students (manual roster)
quiz_allowed_students = Table(
    "quiz_allowed_students",
    Base.metadata,
    Column("quiz_id", Uuid(as_uuid=True), ForeignKey("quizzes.id", ondelete="CASCADE"), primary_key=True),
    Column("student_id", Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Quiz(BaseModel):
    """
    A timed quiz session.

    status and start_time change only through QuizStateMachine. The
    version column is an optimistic lock: two teachers writing the same
    quiz at once make the second flush fail instead of silently
    overwriting the first.
    """
    __tablename__ = "quizzes"

    teacher_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Quiz info
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    room_code = Column(String(12), unique=True, nullable=False, index=True)
    material_url = Column(String(500), nullable=True)

    # Timing
    duration_minutes = Column(Integer, nullable=False, default=30)
    start_time = Column(DateTime(timezone=True), nullable=True)

    status = Column(
        Enum(
            QuizStatus,
            name="quiz_status",
            values_callable=lambda x: [e.value for e in x]
        ),
        default=QuizStatus.DRAFT,
        nullable=False,
        index=True
    )

    version = Column(Integer, nullable=False, default=1)

    # Relationships
    questions = relationship(
        "Question",
        back_populates="quiz",
        cascade="all, delete-orphan",
        order_by="Question.display_order",
        lazy="selectin",
    )
    allowed_classes = relationship("SchoolClass", secondary=quiz_classes, lazy="selectin")
    allowed_students = relationship("User", secondary=quiz_allowed_students, lazy="selectin")
    attempts = relationship("Attempt", back_populates="quiz", cascade="all, delete-orphan")
    invalid_entries = relationship("InvalidEntry", back_populates="quiz", cascade="all, delete-orphan")

    __mapper_args__ = {"version_id_col": version}

    @property
    def total_points(self) -> float:
        return sum(q.points for q in self.questions)

    @property
    def is_restricted(self) -> bool:
        return bool(self.allowed_classes) or bool(self.allowed_students)
