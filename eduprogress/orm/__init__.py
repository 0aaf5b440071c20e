from .base import Base

# Accounts
from .user import UserRole, Student, Teacher, Parent, StudentParent
from .enrollment import TeacherStudent

# Content
from .lesson import Lesson, LessonCategory, LessonDifficulty
from .assignment import Assignment, AssignmentAudienceMember, AssignmentType

# Activity
from .lesson_progress import LessonProgress, LessonStatus
from .submission import Submission, SubmissionStatus

__all__ = [
    "Base",
    "UserRole",
    "Student",
    "Teacher",
    "Parent",
    "StudentParent",
    "TeacherStudent",
    "Lesson",
    "LessonCategory",
    "LessonDifficulty",
    "Assignment",
    "AssignmentAudienceMember",
    "AssignmentType",
    "LessonProgress",
    "LessonStatus",
    "Submission",
    "SubmissionStatus",
]
