"""
Progress Service

Single entry point for progress views used by the HTTP adapter and
dashboards. Every figure comes from the Activity Aggregator; this module only
adds existence checks, recent activity, the multi-student envelope and the
paginated list of raw progress rows.
"""
import logging
import math
from typing import List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from eduprogress.config.settings import Settings
from eduprogress.exceptions import ForbiddenError, NotFoundError
from eduprogress.orm.user import Student, UserRole
from eduprogress.orm.enrollment import TeacherStudent
from eduprogress.orm.lesson import Lesson
from eduprogress.orm.assignment import Assignment
from eduprogress.orm.lesson_progress import LessonProgress
from eduprogress.orm.submission import Submission
from eduprogress.schemas.progress import (
    StudentProgress,
    DetailedStudentProgress,
    RecentActivity,
    StudentProgressEntry,
    StudentIdentity,
    PaginationInfo,
    ProgressPage,
)
from eduprogress.security.principal import Principal
from eduprogress.services.activity_aggregator import (
    ActivityAggregator,
    ProgressDataSource,
    SqlProgressDataSource,
)

logger = logging.getLogger(__name__)


def _aggregator(db: AsyncSession, source: Optional[ProgressDataSource] = None) -> ActivityAggregator:
    return ActivityAggregator(source or SqlProgressDataSource(db))


async def get_student_or_404(db: AsyncSession, student_id: int) -> Student:
    student = await db.get(Student, student_id)
    if student is None:
        raise NotFoundError("Student", student_id)
    return student


async def get_student_progress(
    db: AsyncSession,
    student_id: int,
    source: Optional[ProgressDataSource] = None
) -> StudentProgress:
    await get_student_or_404(db, student_id)
    return await _aggregator(db, source).compute(student_id)


async def _recent_lessons(db: AsyncSession, student_id: int, limit: int) -> List[dict]:
    result = await db.execute(
        select(LessonProgress, Lesson)
        .join(Lesson, Lesson.id == LessonProgress.lesson_id)
        .where(LessonProgress.student_id == student_id)
        .order_by(LessonProgress.updated_at.desc(), LessonProgress.id.desc())
        .limit(limit)
    )
    entries = []
    for progress, lesson in result.all():
        entry = progress.to_dict()
        entry["lesson"] = lesson.summary()
        entries.append(entry)
    return entries


async def _recent_submissions(db: AsyncSession, student_id: int, limit: int) -> List[dict]:
    result = await db.execute(
        select(Submission, Assignment)
        .join(Assignment, Assignment.id == Submission.assignment_id)
        .where(Submission.student_id == student_id)
        .order_by(Submission.updated_at.desc(), Submission.id.desc())
        .limit(limit)
    )
    entries = []
    for submission, assignment in result.all():
        entry = submission.to_dict()
        entry["assignment"] = assignment.summary()
        entries.append(entry)
    return entries


async def get_detailed_progress(
    db: AsyncSession,
    student_id: int,
    limit: Optional[int] = None,
    source: Optional[ProgressDataSource] = None
) -> DetailedStudentProgress:
    """
    StudentProgress plus the most recently updated lesson progress rows and
    submissions, each with a short summary of its lesson / assignment.
    """
    await get_student_or_404(db, student_id)
    if limit is None:
        limit = Settings.RECENT_ACTIVITY_LIMIT

    report = await _aggregator(db, source).compute(student_id)
    recent = RecentActivity(
        lessons=await _recent_lessons(db, student_id, limit),
        submissions=await _recent_submissions(db, student_id, limit),
    )
    return DetailedStudentProgress(**report.model_dump(), recent_activity=recent)


async def get_multiple_students_progress(
    db: AsyncSession,
    student_ids: Sequence[int],
    source: Optional[ProgressDataSource] = None
) -> List[StudentProgressEntry]:
    """
    Progress for several students, in the order requested.

    Fails with NotFoundError on the first unknown id rather than returning a
    partial list.
    """
    requested = list(student_ids)
    if not requested:
        return []

    result = await db.execute(select(Student).where(Student.id.in_(sorted(set(requested)))))
    students = {student.id: student for student in result.scalars().all()}
    for student_id in requested:
        if student_id not in students:
            raise NotFoundError("Student", student_id)

    aggregator = _aggregator(db, source)
    entries = []
    for student_id in requested:
        student = students[student_id]
        report = await aggregator.compute(student_id)
        entries.append(StudentProgressEntry(
            **report.model_dump(),
            student_id=student_id,
            student=StudentIdentity(**student.identity()),
        ))

    logger.info(f"[PROGRESS] Computed progress for {len(entries)} students")
    return entries


async def list_all_progress(
    db: AsyncSession,
    principal: Principal,
    page: int = 1,
    limit: int = 10
) -> ProgressPage:
    """
    Lesson progress rows across students, most recently updated first.

    Admins see every row; teachers see rows of their enrolled students.
    """
    if principal.role == UserRole.admin:
        conditions = []
    elif principal.role == UserRole.teacher:
        enrolled = select(TeacherStudent.student_id).where(TeacherStudent.teacher_id == principal.id)
        conditions = [LessonProgress.student_id.in_(enrolled)]
    else:
        raise ForbiddenError("Access denied. Admin or teacher role required.")

    total = await db.scalar(select(func.count(LessonProgress.id)).where(*conditions)) or 0

    result = await db.execute(
        select(LessonProgress, Student, Lesson)
        .outerjoin(Student, Student.id == LessonProgress.student_id)
        .outerjoin(Lesson, Lesson.id == LessonProgress.lesson_id)
        .where(*conditions)
        .order_by(LessonProgress.updated_at.desc(), LessonProgress.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    rows = []
    for progress, student, lesson in result.all():
        entry = progress.to_dict()
        entry["student"] = student.identity() if student else None
        entry["lesson"] = lesson.summary() if lesson else None
        rows.append(entry)

    return ProgressPage(
        progress=rows,
        pagination=PaginationInfo(
            current_page=page,
            total_pages=math.ceil(total / limit) if limit else 0,
            total_items=total,
            items_per_page=limit,
        ),
    )
