"""
Attempt Schemas

Pydantic models for the student exam runner (join, start, answer,
finish, polling) and for teacher-side grading and attempt control.
"""

from datetime import datetime
from typing import Optional, List, Any
from uuid import UUID
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from quizroom.schemas.quiz import QuizStatus, QuestionType


# ============================================================
# Enums
# ============================================================

class AttemptStatus(str, Enum):
    WAITING = "waiting"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    SUBMITTED = "submitted"


class ControlAction(str, Enum):
    PAUSE = "pause"
    RESUME = "resume"
    BLOCK = "block"
    UNBLOCK = "unblock"


class GradeState(str, Enum):
    UNGRADED = "ungraded"
    CORRECT = "correct"
    INCORRECT = "incorrect"


# ============================================================
# Student Requests
# ============================================================

class JoinRequest(BaseModel):
    room_code: str = Field(..., min_length=1, max_length=20)
    student_id: str = Field(..., min_length=1, max_length=50)

    @field_validator("room_code")
    def normalize_room_code(cls, v):
        v = v.strip().upper()
        if not v:
            raise ValueError("Room code cannot be blank")
        return v

    @field_validator("student_id")
    def strip_student_id(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Student ID cannot be blank")
        return v


class StartExamRequest(BaseModel):
    quiz_id: UUID
    student_db_id: UUID


class AnswerSubmitRequest(BaseModel):
    attempt_id: UUID
    question_id: UUID
    answer: Any = Field(..., description="Option id, list of option ids, or free text")
    time_taken: int = Field(0, ge=0, description="Seconds spent on the question")


class FinishExamRequest(BaseModel):
    attempt_id: UUID


# ============================================================
# Student Responses
# ============================================================

class JoinResponse(BaseModel):
    student_name: str
    student_id: str
    student_db_id: UUID
    attempt_id: UUID
    attempt_status: AttemptStatus
    quiz_id: UUID
    quiz_title: str
    quiz_status: QuizStatus
    time_limit: int
    start_time: Optional[datetime] = None
    server_time: datetime


class StartExamResponse(BaseModel):
    attempt_id: UUID
    status: str  # "started" or "resumed"
    started_at: Optional[datetime] = None
    remaining_seconds: Optional[int] = None
    server_time: datetime


class ExamOptionResponse(BaseModel):
    id: str
    text: str


class ExamQuestionResponse(BaseModel):
    """A question as the student sees it: no answer key, no correctness flags."""
    id: UUID
    question_type: QuestionType
    question_text: str
    options: Optional[List[ExamOptionResponse]] = None
    points: float
    time_limit_seconds: Optional[int] = None


class AnswerSubmitResponse(BaseModel):
    saved: bool = True
    question_id: UUID
    answered_at: datetime


class FinishExamResponse(BaseModel):
    attempt_id: UUID
    status: AttemptStatus
    score: float
    total_points: float
    submitted_at: Optional[datetime] = None


class AttemptStatusResponse(BaseModel):
    attempt_id: UUID
    status: AttemptStatus
    is_paused: bool
    is_blocked: bool


class ResultSummaryResponse(BaseModel):
    attempt_id: UUID
    status: AttemptStatus
    is_blocked: bool
    score: float
    total_points: float
    total_questions: int
    correct_answers: int
    has_manual_grading: bool
    pending_count: int


# ============================================================
# Teacher Requests / Responses
# ============================================================

class ControlRequest(BaseModel):
    action: ControlAction


class ControlResponse(BaseModel):
    attempt_id: UUID
    action: ControlAction
    status: AttemptStatus
    is_paused: bool
    is_blocked: bool


class ManualGradeRequest(BaseModel):
    question_id: UUID
    points: float


class ManualGradeResponse(BaseModel):
    attempt_id: UUID
    question_id: UUID
    points_awarded: float
    is_correct: bool
    score: float
    pending_count: int


class AnswerDetail(BaseModel):
    question_id: UUID
    question_text: str
    question_type: QuestionType
    options: Optional[List[dict]] = None
    correct_answer: str
    max_points: float
    response: Any = None
    grade_state: GradeState
    points_awarded: Optional[float] = None
    is_correct: Optional[bool] = None
    time_taken_seconds: int
    answered_at: datetime


class StudentResultDetailResponse(BaseModel):
    attempt_id: UUID
    quiz_id: UUID
    student_name: str
    student_id: str
    status: AttemptStatus
    is_blocked: bool
    score: float
    total_points: float
    started_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    pending_count: int
    answers: List[AnswerDetail]


class ResultRow(BaseModel):
    attempt_id: UUID
    student_name: str
    student_id: str
    status: AttemptStatus
    is_blocked: bool
    score: float
    total_points: float
    started_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    needs_grading: int


class QuizResultsResponse(BaseModel):
    quiz_id: UUID
    results: List[ResultRow]
