from sqlalchemy import Column, String, ForeignKey, Table, Uuid
from sqlalchemy.orm import relationship

from quizroom.db.database import Base
from .base import BaseModel

# Enrollment: which students belong to which class
class_students = Table(
    "class_students",
    Base.metadata,
    Column("class_id", Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True),
    Column("student_id", Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class SchoolClass(BaseModel):
    __tablename__ = "classes"

    name = Column(String(100), nullable=False)
    teacher_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Relationships
    students = relationship("User", secondary=class_students, back_populates="classes")
