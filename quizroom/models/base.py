"""
Common columns for exam tables.

Every table gets a UUID primary key plus created_at / updated_at.
Types are chosen to work on PostgreSQL and on SQLite (used by the test
suite): Uuid renders as native UUID or CHAR(32), JSONType as JSONB or
JSON text.
"""

import uuid
from sqlalchemy import Column, DateTime, JSON, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB

from quizroom.core.clock import utcnow
from quizroom.db.database import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


class BaseModel(Base):
    __abstract__ = True

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False, index=True)

    # set client-side so async sessions never reload them after a flush
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.id}>"
