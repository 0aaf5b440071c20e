"""
eduprogress/orm/user.py
Platform accounts: students, teachers, parents

Authentication fields (password hashes, tokens) live with the external
identity service; only the identity and display fields used by progress
views are kept here.
"""
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, UniqueConstraint
from enum import Enum
from eduprogress.orm.base import BaseModel


class UserRole(str, Enum):
    """Roles carried by an authenticated principal"""
    admin = "admin"
    teacher = "teacher"
    parent = "parent"
    student = "student"


class Student(BaseModel):
    """
    A learner.

    Teachers are NOT stored on the student: the set of a student's teachers
    is derived from the teacher_students enrollment table.
    """
    __tablename__ = "students"

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True, unique=True, index=True)
    grade = Column(String(20), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    def identity(self) -> dict:
        """Identity block attached to multi-student progress views."""
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "grade": self.grade,
        }

    def __repr__(self):
        return f"<Student(id={self.id}, name='{self.first_name} {self.last_name}')>"


class Teacher(BaseModel):
    """A teacher; owns lessons and assignments."""
    __tablename__ = "teachers"

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True, unique=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    def __repr__(self):
        return f"<Teacher(id={self.id}, name='{self.first_name} {self.last_name}')>"


class Parent(BaseModel):
    """A parent or guardian; sees the progress of linked children."""
    __tablename__ = "parents"

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True, unique=True, index=True)

    def __repr__(self):
        return f"<Parent(id={self.id}, name='{self.first_name} {self.last_name}')>"


class StudentParent(BaseModel):
    """Parent ↔ child link. One row per pair."""
    __tablename__ = "student_parents"

    parent_id = Column(
        Integer,
        ForeignKey("parents.id", ondelete="CASCADE"),
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
        UniqueConstraint("parent_id", "student_id", name="uq_student_parent_pair"),
    )
