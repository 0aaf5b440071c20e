"""
eduprogress/schemas/progress.py
Pydantic schemas for the StudentProgress contract

Rate and score fields are strings formatted to 2 decimals; counts and
totalTimeSpent are integers. Keys serialize in camelCase
(model_dump(by_alias=True)).
"""
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ================= RESPONSE SCHEMAS =================

class LessonProgressStats(CamelModel):
    viewed: int
    completed: int
    total: int
    completion_rate: str
    average_score: str


class AssignmentProgressStats(CamelModel):
    submitted: int
    graded: int
    total: int
    submission_rate: str
    average_score: str


class OverallProgressStats(CamelModel):
    progress: str
    average_score: str
    total_time_spent: int = Field(..., description="Minutes")


class StudentProgress(CamelModel):
    """
    Aggregated progress for one student.

    Example:
    {
        "lessons": {"viewed": 3, "completed": 2, "total": 10,
                    "completionRate": "20.00", "averageScore": "90.00"},
        "assignments": {"submitted": 1, "graded": 1, "total": 2,
                        "submissionRate": "50.00", "averageScore": "90.00"},
        "overall": {"progress": "32.00", "averageScore": "90.00",
                    "totalTimeSpent": 75}
    }
    """
    lessons: LessonProgressStats
    assignments: AssignmentProgressStats
    overall: OverallProgressStats


class RecentActivity(CamelModel):
    lessons: List[Dict[str, Any]] = Field(default_factory=list)
    submissions: List[Dict[str, Any]] = Field(default_factory=list)


class DetailedStudentProgress(StudentProgress):
    recent_activity: RecentActivity


class StudentIdentity(CamelModel):
    id: int
    first_name: str
    last_name: str
    grade: Optional[str] = None


class StudentProgressEntry(StudentProgress):
    """One row of a teacher/parent multi-student view."""
    student_id: int
    student: StudentIdentity


class PaginationInfo(CamelModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int


class ProgressPage(CamelModel):
    """Lesson progress rows, newest update first, with their student and lesson."""
    progress: List[Dict[str, Any]] = Field(default_factory=list)
    pagination: PaginationInfo


# ================= REQUEST SCHEMAS =================

class BatchProgressRequest(CamelModel):
    """
    Used by: POST /api/progress/students/batch
    """
    student_ids: List[int] = Field(..., min_length=1, max_length=200)


class StandardResponse(BaseModel):
    """
    Envelope for every successful response.

    {
        "success": true,
        "message": "Human-readable message",
        "data": {...}
    }
    """
    success: bool = Field(True, description="Whether the operation succeeded")
    message: str = Field(..., description="Human-readable status message")
    data: Optional[Any] = Field(None, description="Endpoint-specific payload")
