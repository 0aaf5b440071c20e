"""
eduprogress/orm/lesson_progress.py
Per-student lesson progress

Key Design Decisions:
- Created lazily the first time a student starts a lesson
- Unique (student_id, lesson_id): create-if-absent relies on this constraint
- time_spent only ever grows (deltas are accumulated)
- completed_at is stamped on the transition INTO completed, never re-stamped
"""
from sqlalchemy import Column, Integer, Float, Text, DateTime, ForeignKey, UniqueConstraint, Enum as SQLEnum
from enum import Enum
from eduprogress.orm.base import BaseModel


class LessonStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# Statuses that count as "viewed"
VIEWED_STATUSES = (LessonStatus.IN_PROGRESS, LessonStatus.COMPLETED)


class LessonProgress(BaseModel):
    """
    Fields:
    - status: not_started | in_progress | completed
    - score: 0-100 or NULL
    - time_spent: accumulated minutes
    - completed_at: NULL until completed
    """
    __tablename__ = "lesson_progress"

    student_id = Column(
        Integer,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    lesson_id = Column(
        Integer,
        ForeignKey("lessons.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    status = Column(SQLEnum(LessonStatus), nullable=False, default=LessonStatus.NOT_STARTED, index=True)
    score = Column(Float, nullable=True)
    time_spent = Column(Integer, nullable=False, default=0)
    completed_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("student_id", "lesson_id", name="uq_progress_student_lesson"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "studentId": self.student_id,
            "lessonId": self.lesson_id,
            "status": self.status.value if self.status else None,
            "score": self.score,
            "timeSpent": self.time_spent,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "notes": self.notes,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<LessonProgress(student={self.student_id}, lesson={self.lesson_id}, status={self.status})>"
