"""
eduprogress/schemas/submission.py
Request schemas for submissions and grading

Score bounds are NOT declared here: they depend on the assignment's
max_points and are enforced by the submission service (400, not 422).
"""
from typing import Optional
from pydantic import Field

from eduprogress.schemas.progress import CamelModel


class SubmissionCreateRequest(CamelModel):
    """
    Used by: POST /api/submissions
    """
    assignment_id: int = Field(..., gt=0)
    content: Optional[str] = None


class SubmissionUpdateRequest(CamelModel):
    """
    Used by: PUT /api/submissions/{submission_id}
    """
    content: Optional[str] = None


class GradeRequest(CamelModel):
    """
    Used by: POST /api/submissions/{submission_id}/grade and /regrade
    """
    score: float
    feedback: Optional[str] = None
