"""
Response Envelope

Every endpoint answers with the same JSON shape:

    success -> {"success": true,  "message": "...", "data": {...}}
    failure -> {"success": false, "message": "...", "errors": ...}
"""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str = "Success"
    data: Optional[T] = None


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    errors: Optional[Any] = None


def ok(data: Any = None, message: str = "Success") -> dict:
    """Build a success envelope."""
    return {"success": True, "message": message, "data": data}
