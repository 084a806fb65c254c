"""
Quiz Schemas

Pydantic models for quiz authoring, lifecycle and timing requests and
responses.
"""

from datetime import datetime
from typing import Optional, List, Union
from uuid import UUID
from enum import Enum

from pydantic import BaseModel, Field, field_validator


# ============================================================
# Enums
# ============================================================

class QuizStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    STARTED = "started"
    FINISHED = "finished"


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    MULTIPLE_SELECTION = "multiple_selection"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"


# ============================================================
# Request Schemas
# ============================================================

class QuizCreateRequest(BaseModel):
    """Request to create a draft quiz."""
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    duration_minutes: Optional[int] = Field(
        None,
        ge=1,
        le=1440,
        description="Exam length in minutes (server default if omitted)"
    )
    class_ids: List[UUID] = Field(
        default_factory=list,
        description="Classes allowed to join"
    )

    @field_validator("title")
    def strip_title(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be blank")
        return v


class QuizUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    duration_minutes: Optional[int] = Field(None, ge=1, le=1440)


class QuizClassesRequest(BaseModel):
    """Replace the set of classes allowed to join."""
    class_ids: List[UUID]


class AllowedStudentsRequest(BaseModel):
    """Invite individual students by their school identifier."""
    student_ids: List[str] = Field(..., min_length=1)


class QuizStatusRequest(BaseModel):
    status: QuizStatus


class TimeAdjustRequest(BaseModel):
    adjustment: int = Field(
        ...,
        ge=-1440,
        le=1440,
        description="Signed number of minutes to add to the running quiz"
    )


class OptionInput(BaseModel):
    id: Optional[Union[str, int]] = None
    text: str = Field(..., min_length=1, max_length=1000)
    is_correct: bool = False


class QuestionCreateRequest(BaseModel):
    question_text: str = Field(..., min_length=1)
    question_type: QuestionType
    options: Optional[List[OptionInput]] = None
    points: Optional[float] = Field(None, gt=0)
    time_limit_seconds: Optional[int] = Field(None, ge=1)


class QuestionUpdateRequest(BaseModel):
    question_text: Optional[str] = Field(None, min_length=1)
    question_type: Optional[QuestionType] = None
    options: Optional[List[OptionInput]] = None
    points: Optional[float] = Field(None, gt=0)
    time_limit_seconds: Optional[int] = Field(None, ge=1)


# ============================================================
# Response Schemas
# ============================================================

class OptionResponse(BaseModel):
    id: str
    text: str
    is_correct: bool


class QuestionResponse(BaseModel):
    """A question as the teacher sees it, answer key included."""
    id: UUID
    quiz_id: UUID
    question_type: QuestionType
    question_text: str
    options: Optional[List[OptionResponse]] = None
    correct_answer: str
    points: float
    time_limit_seconds: Optional[int] = None
    display_order: int

    class Config:
        from_attributes = True


class ClassSummary(BaseModel):
    id: UUID
    name: str

    class Config:
        from_attributes = True


class QuizResponse(BaseModel):
    """Quiz metadata with its effective status and timing."""
    id: UUID
    title: str
    description: Optional[str] = None
    room_code: str
    status: QuizStatus
    duration_minutes: int
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    remaining_seconds: Optional[int] = None
    question_count: int
    total_points: float
    created_at: datetime


class QuizDetailResponse(QuizResponse):
    """Quiz with questions and access list (teacher view)."""
    questions: List[QuestionResponse]
    allowed_classes: List[ClassSummary]
    allowed_students_count: int
    server_time: datetime


class QuizListResponse(BaseModel):
    quizzes: List[QuizResponse]
    total: int


class QuizCreatedResponse(BaseModel):
    id: UUID
    room_code: str
    status: QuizStatus


class QuizClassesResponse(BaseModel):
    quiz_id: UUID
    class_ids: List[UUID]


class AllowedStudentsResponse(BaseModel):
    added: int
    not_found: List[str]


class QuizStatusResponse(BaseModel):
    """What polling clients need to run a synchronized countdown."""
    quiz_id: UUID
    status: QuizStatus
    start_time: Optional[datetime] = None
    duration_minutes: int
    remaining_seconds: Optional[int] = None
    server_time: datetime
    poll_interval_seconds: int


class TimeAdjustResponse(BaseModel):
    new_duration: int
    adjustment_applied: int
    end_time: Optional[datetime] = None
    remaining_seconds: Optional[int] = None


class InvalidEntryResponse(BaseModel):
    student_identifier: str
    created_at: datetime

    class Config:
        from_attributes = True
