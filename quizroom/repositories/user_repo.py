"""
User Repository

Data access layer for the User directory and class enrollment.
"""

from typing import Optional, List, Sequence, Set
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from quizroom.repositories.base import BaseRepository
from quizroom.models.user import User, UserRole
from quizroom.models.school_class import SchoolClass, class_students


class UserRepository(BaseRepository[User]):
    """Repository for User model."""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    # =================
    # Get by school identifier
    # =================
    async def get_student(self, user_id: str) -> Optional[User]:
        """Get a user by school identifier, only if they are a student."""
        result = await self.db.execute(
            select(User).where(
                User.user_id == user_id,
                User.role == UserRole.STUDENT,
            )
        )
        return result.scalar_one_or_none()

    async def get_students_by_user_ids(self, user_ids: Sequence[str]) -> List[User]:
        if not user_ids:
            return []
        result = await self.db.execute(
            select(User).where(
                User.user_id.in_(list(user_ids)),
                User.role == UserRole.STUDENT,
            )
        )
        return list(result.scalars().all())

    # =================
    # Enrollment
    # =================
    async def is_enrolled_in_any(self, student_id: UUID, class_ids: Sequence[UUID]) -> bool:
        """True if the student belongs to at least one of the given classes."""
        if not class_ids:
            return False
        result = await self.db.execute(
            select(func.count())
            .select_from(class_students)
            .where(
                class_students.c.student_id == student_id,
                class_students.c.class_id.in_(list(class_ids)),
            )
        )
        return (result.scalar() or 0) > 0


class SchoolClassRepository(BaseRepository[SchoolClass]):
    """Repository for SchoolClass model."""

    def __init__(self, db: AsyncSession):
        super().__init__(SchoolClass, db)

    async def student_ids(self, class_ids: Sequence[UUID]) -> Set[UUID]:
        """Distinct students enrolled across the given classes."""
        if not class_ids:
            return set()
        result = await self.db.execute(
            select(class_students.c.student_id)
            .where(class_students.c.class_id.in_(list(class_ids)))
            .distinct()
        )
        return set(result.scalars().all())
