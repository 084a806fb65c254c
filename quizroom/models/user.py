import enum

from sqlalchemy import Column, String, Enum
from sqlalchemy.orm import relationship

from .base import BaseModel


class UserRole(enum.Enum):
    TEACHER = "teacher"
    STUDENT = "student"
    ADMIN = "admin"


class UserStatus(enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class User(BaseModel):
    """
    Directory entry for teachers and students.

    user_id is the school-issued identifier a student types into the
    join form; id is the opaque primary key used everywhere else.
    """
    __tablename__ = "users"

    user_id = Column(String(50), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, default="")
    email = Column(String(255), unique=True, nullable=True)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=UserRole.STUDENT,
        index=True
    )
    status = Column(
        Enum(UserStatus, name="user_status", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=UserStatus.ACTIVE
    )

    # Relationships
    classes = relationship("SchoolClass", secondary="class_students", back_populates="students")
    attempts = relationship("Attempt", back_populates="student", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE
