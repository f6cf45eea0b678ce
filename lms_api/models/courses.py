"""Course-related Pydantic models."""
from datetime import datetime

from pydantic import BaseModel, Field


class CourseCreate(BaseModel):
    """Model for creating a course."""

    title: str = Field(..., min_length=1, max_length=200)
    class_code: str = Field(..., min_length=1, max_length=32)
    description: str | None = None


class CourseResponse(BaseModel):
    """Course summary."""

    id: int
    title: str
    class_code: str
    description: str | None
    created_at: datetime
    member_count: int = 0
    is_member: bool = False
