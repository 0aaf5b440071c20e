"""
eduprogress/orm/submission.py
Student submissions for assignments
"""
from sqlalchemy import Column, Integer, Float, Text, DateTime, ForeignKey, UniqueConstraint, Enum as SQLEnum
from datetime import datetime
from enum import Enum as PyEnum
from eduprogress.orm.base import BaseModel


class SubmissionStatus(str, PyEnum):
    """Submission lifecycle status"""
    DRAFT = "draft"              # Being edited by student
    SUBMITTED = "submitted"      # Handed in, awaiting grading
    GRADED = "graded"            # Scored by the teacher; content frozen
    RETURNED = "returned"        # Handed back to the student


# Statuses that count as "handed in"
HANDED_IN_STATUSES = (SubmissionStatus.SUBMITTED, SubmissionStatus.GRADED)


class Submission(BaseModel):
    """
    One student's work for one assignment.

    The (assignment_id, student_id) unique constraint is the ONLY guard
    against duplicates; application code never checks before inserting.
    """
    __tablename__ = "submissions"

    assignment_id = Column(
        Integer,
        ForeignKey("assignments.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    student_id = Column(
        Integer,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    content = Column(Text, nullable=True)
    status = Column(SQLEnum(SubmissionStatus), default=SubmissionStatus.DRAFT, nullable=False, index=True)
    score = Column(Float, nullable=True)
    feedback = Column(Text, nullable=True)
    submitted_at = Column(DateTime, nullable=True)
    graded_at = Column(DateTime, nullable=True)
    graded_by = Column(
        Integer,
        ForeignKey("teachers.id", ondelete="SET NULL"),
        nullable=True
    )

    __table_args__ = (
        UniqueConstraint("assignment_id", "student_id", name="uq_submission_assignment_student"),
    )

    def mark_submitted(self, content: str = None) -> None:
        if content is not None:
            self.content = content
        self.status = SubmissionStatus.SUBMITTED
        self.submitted_at = datetime.utcnow()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "assignmentId": self.assignment_id,
            "studentId": self.student_id,
            "content": self.content,
            "status": self.status.value if self.status else None,
            "score": self.score,
            "feedback": self.feedback,
            "submittedAt": self.submitted_at.isoformat() if self.submitted_at else None,
            "gradedAt": self.graded_at.isoformat() if self.graded_at else None,
            "gradedBy": self.graded_by,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Submission(id={self.id}, assignment={self.assignment_id}, student={self.student_id}, status={self.status})>"
