"""
Exam Engine Exceptions

Domain errors raised by the services. Each class knows the HTTP status
it maps to; the handlers in quizroom.main turn them into the
{success, message, errors} envelope.

Taxonomy:
- ValidationFailed  (400) missing or malformed input
- AccessDenied      (403) block flag, class restriction, inactive quiz
- NotFound          (404) unknown room code, quiz, student, attempt
- StateConflict     (409) operation invalid for the current state
"""

from typing import Any, Optional

from fastapi import status


class ExamEngineError(Exception):
    """Base exception for exam engine errors."""
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, errors: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors


class ValidationFailed(ExamEngineError):
    """Input is missing or malformed."""
    status_code = status.HTTP_400_BAD_REQUEST


class AccessDenied(ExamEngineError):
    """Caller may not enter or act on this session."""
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(ExamEngineError):
    """Referenced record does not exist (or is not visible to the caller)."""
    status_code = status.HTTP_404_NOT_FOUND


class StateConflict(ExamEngineError):
    """Operation is not valid for the current quiz or attempt state."""
    status_code = status.HTTP_409_CONFLICT
