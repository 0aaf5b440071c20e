"""
eduprogress/schemas/lesson_progress.py
Request schemas for lesson progress actions
"""
from typing import Optional
from pydantic import Field, field_validator

from eduprogress.orm.lesson_progress import LessonStatus
from eduprogress.schemas.progress import CamelModel


class LessonProgressUpdateRequest(CamelModel):
    """
    Used by: PATCH /api/lessons/{lesson_id}/progress

    time_spent is a delta in minutes added to the accumulated total.
    """
    status: Optional[LessonStatus] = None
    score: Optional[float] = None
    time_spent: Optional[int] = None
    notes: Optional[str] = Field(None, max_length=5000)

    @field_validator('notes')
    @classmethod
    def strip_notes(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return v.strip() or None


class CompleteLessonRequest(CamelModel):
    """
    Used by: POST /api/lessons/{lesson_id}/progress/complete
    """
    score: Optional[float] = None
    notes: Optional[str] = Field(None, max_length=5000)
