"""
eduprogress/orm/enrollment.py
Teacher ↔ Student enrollment (the roster index)

Rows are created and deleted by admin/teacher account flows. The progress
engine only reads them.
"""
from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint
from eduprogress.orm.base import BaseModel


class TeacherStudent(BaseModel):
    """
    One enrollment of a student with a teacher.

    Constraints:
    - Unique: (teacher_id, student_id) → at most one row per pair
    """
    __tablename__ = "teacher_students"

    teacher_id = Column(
        Integer,
        ForeignKey("teachers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    student_id = Column(
        Integer,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    __table_args__ = (
        UniqueConstraint("teacher_id", "student_id", name="uq_teacher_student_pair"),
    )

    def __repr__(self):
        return f"<TeacherStudent(teacher={self.teacher_id}, student={self.student_id})>"
