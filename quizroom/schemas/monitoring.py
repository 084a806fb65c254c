"""
Live Monitoring Schemas

Read model polled by the teacher dashboard.
"""

from datetime import datetime
from typing import Optional, List, Dict
from uuid import UUID
from enum import Enum

from pydantic import BaseModel

from quizroom.schemas.quiz import QuizStatus
from quizroom.schemas.attempt import AttemptStatus


class StatusLabel(str, Enum):
    WAITING = "Waiting"
    IN_PROGRESS = "In Progress"
    PAUSED = "Paused"
    SUBMITTED = "Submitted"
    BLOCKED = "Blocked"


class LiveStudentRow(BaseModel):
    attempt_id: UUID
    student_db_id: UUID
    student_name: str
    student_id: str
    status: AttemptStatus
    status_label: StatusLabel
    is_paused: bool
    is_blocked: bool
    started_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    answered_count: int
    total_questions: int
    correct_count: int
    incorrect_count: int
    pending_count: int
    percentage: float
    score: float
    total_time_spent: int
    elapsed_seconds: int


class LiveMonitorResponse(BaseModel):
    quiz_id: UUID
    quiz_status: QuizStatus
    start_time: Optional[datetime] = None
    duration_minutes: int
    remaining_seconds: Optional[int] = None
    server_time: datetime
    total_questions: int
    counts: Dict[str, int]
    students: List[LiveStudentRow]
