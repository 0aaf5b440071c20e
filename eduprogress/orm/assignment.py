"""
eduprogress/orm/assignment.py
Assignments and their explicit audience

The audience ("assignedTo") is stored as ordered rows in assignment_audience.
NO ROWS is the sentinel for "every student currently enrolled with the
assignment's teacher". It never means "no one".
"""
from typing import Iterable, List

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Float, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from enum import Enum
from eduprogress.orm.base import BaseModel


class AssignmentType(str, Enum):
    HOMEWORK = "homework"
    QUIZ = "quiz"
    PROJECT = "project"
    READING = "reading"
    PRACTICE = "practice"


class Assignment(BaseModel):
    """
    Work set by a teacher, optionally tied to a lesson.

    Fields:
    - max_points: positive; grading bounds scores to [0, max_points]
    - is_active: soft-delete flag; inactive assignments drop out of
      every count and listing
    - audience_members: explicit audience, ordered by position
    """
    __tablename__ = "assignments"

    teacher_id = Column(
        Integer,
        ForeignKey("teachers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    lesson_id = Column(
        Integer,
        ForeignKey("lessons.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    assignment_type = Column(String(20), nullable=False, default=AssignmentType.HOMEWORK.value)
    max_points = Column(Float, nullable=False, default=100)
    due_date = Column(DateTime, nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    audience_members = relationship(
        "AssignmentAudienceMember",
        order_by="AssignmentAudienceMember.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def assigned_to(self) -> List[int]:
        """Explicit audience as stored; empty means all enrolled students."""
        return [member.student_id for member in self.audience_members]

    def assign_to(self, student_ids: Iterable[int]) -> None:
        """
        Replace the explicit audience. Duplicates are dropped, first
        occurrence wins. An empty iterable restores the all-enrolled sentinel.
        """
        ordered = list(dict.fromkeys(int(sid) for sid in student_ids))
        # Reuse retained rows so a flush never inserts a duplicate pair
        # before deleting the old one.
        existing = {member.student_id: member for member in self.audience_members}
        members = []
        for index, sid in enumerate(ordered):
            member = existing.get(sid) or AssignmentAudienceMember(student_id=sid)
            member.position = index
            members.append(member)
        self.audience_members = members

    def summary(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "assignmentType": self.assignment_type,
            "maxPoints": self.max_points,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
        }

    def __repr__(self):
        return f"<Assignment(id={self.id}, teacher={self.teacher_id}, audience={self.assigned_to or 'ALL'})>"


class AssignmentAudienceMember(BaseModel):
    """One student in an assignment's explicit audience."""
    __tablename__ = "assignment_audience"

    assignment_id = Column(
        Integer,
        ForeignKey("assignments.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    # No FK to students: explicit audiences are kept verbatim even if a
    # student row later disappears.
    student_id = Column(Integer, nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("assignment_id", "student_id", name="uq_assignment_audience_member"),
    )
