"""
eduprogress/orm/lesson.py
Lessons authored by teachers
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey
from enum import Enum
from eduprogress.orm.base import BaseModel


class LessonCategory(str, Enum):
    MATH = "math"
    READING = "reading"
    SCIENCE = "science"
    ART = "art"
    MUSIC = "music"
    PHYSICAL = "physical"
    SOCIAL = "social"


class LessonDifficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class Lesson(BaseModel):
    """
    A lesson belongs to exactly one teacher.

    Lessons are archived by flipping is_active; rows referenced by progress
    are never deleted by the platform.
    """
    __tablename__ = "lessons"

    teacher_id = Column(
        Integer,
        ForeignKey("teachers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(20), nullable=False, default=LessonCategory.MATH.value, index=True)
    difficulty = Column(String(20), nullable=False, default=LessonDifficulty.BEGINNER.value)
    duration_minutes = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    def summary(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "difficulty": self.difficulty,
        }

    def __repr__(self):
        return f"<Lesson(id={self.id}, title='{self.title}', active={self.is_active})>"
