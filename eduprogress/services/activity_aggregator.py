"""
eduprogress/services/activity_aggregator.py
Activity Aggregator

Builds a StudentProgress report from four read-only queries:
- the student's lesson progress rows
- the count of active lessons (platform-wide)
- the student's submissions joined to their assignments
- the count of active assignments in the student's scope

The queries are injected through ProgressDataSource so the arithmetic can be
exercised without a database. Internal figures stay unrounded; rates are
clamped to [0, 100] before they feed the blended figures and are only
rounded when rendered.

Rows pointing at a missing lesson, or at a missing / inactive assignment or
one with non-positive max_points, are excluded from every count and logged.
So are rows whose stored status is not a known status.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Protocol, Sequence, Type

from sqlalchemy import String, select, func, type_coerce
from sqlalchemy.ext.asyncio import AsyncSession

from eduprogress.orm.lesson import Lesson
from eduprogress.orm.lesson_progress import LessonProgress, LessonStatus, VIEWED_STATUSES
from eduprogress.orm.assignment import Assignment
from eduprogress.orm.submission import Submission, SubmissionStatus, HANDED_IN_STATUSES
from eduprogress.schemas.progress import (
    StudentProgress,
    LessonProgressStats,
    AssignmentProgressStats,
    OverallProgressStats,
)
from eduprogress.services.audience_resolver import AudienceResolver

logger = logging.getLogger(__name__)

LESSON_WEIGHT = 0.6
ASSIGNMENT_WEIGHT = 0.4


@dataclass(frozen=True)
class ProgressRecord:
    lesson_id: int
    status: Optional[LessonStatus]
    score: Optional[float]
    time_spent: int
    lesson_exists: bool = True


@dataclass(frozen=True)
class SubmissionRecord:
    submission_id: int
    assignment_id: int
    status: Optional[SubmissionStatus]
    score: Optional[float]
    assignment_exists: bool = True
    assignment_active: bool = True
    max_points: Optional[float] = 100.0


def parse_status(enum_cls: Type[Enum], raw: Any) -> Optional[Enum]:
    """
    Stored status (enum name or value) as an enum member, or None when the
    stored text matches neither.
    """
    if raw is None:
        return None
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls[raw]
    except KeyError:
        pass
    try:
        return enum_cls(raw)
    except ValueError:
        return None


class ProgressDataSource(Protocol):
    async def progress_rows(self, student_id: int) -> List[ProgressRecord]: ...

    async def active_lesson_count(self) -> int: ...

    async def submission_rows(self, student_id: int) -> List[SubmissionRecord]: ...

    async def assignments_in_scope_count(self, student_id: int) -> int: ...


class SqlProgressDataSource:
    """ProgressDataSource backed by the ORM."""

    def __init__(self, db: AsyncSession, resolver: Optional[AudienceResolver] = None):
        self.db = db
        self.resolver = resolver or AudienceResolver(db)

    async def progress_rows(self, student_id: int) -> List[ProgressRecord]:
        result = await self.db.execute(
            select(
                LessonProgress.lesson_id,
                type_coerce(LessonProgress.status, String),
                LessonProgress.score,
                LessonProgress.time_spent,
                Lesson.id,
            )
            .outerjoin(Lesson, Lesson.id == LessonProgress.lesson_id)
            .where(LessonProgress.student_id == student_id)
        )
        return [
            ProgressRecord(
                lesson_id=lesson_id,
                status=parse_status(LessonStatus, status),
                score=score,
                time_spent=time_spent or 0,
                lesson_exists=joined_id is not None,
            )
            for lesson_id, status, score, time_spent, joined_id in result.all()
        ]

    async def active_lesson_count(self) -> int:
        result = await self.db.execute(
            select(func.count(Lesson.id)).where(Lesson.is_active == True)
        )
        return result.scalar() or 0

    async def submission_rows(self, student_id: int) -> List[SubmissionRecord]:
        result = await self.db.execute(
            select(
                Submission.id,
                Submission.assignment_id,
                type_coerce(Submission.status, String),
                Submission.score,
                Assignment.id,
                Assignment.is_active,
                Assignment.max_points,
            )
            .outerjoin(Assignment, Assignment.id == Submission.assignment_id)
            .where(Submission.student_id == student_id)
        )
        return [
            SubmissionRecord(
                submission_id=submission_id,
                assignment_id=assignment_id,
                status=parse_status(SubmissionStatus, status),
                score=score,
                assignment_exists=joined_id is not None,
                assignment_active=bool(is_active),
                max_points=max_points,
            )
            for submission_id, assignment_id, status, score, joined_id, is_active, max_points in result.all()
        ]

    async def assignments_in_scope_count(self, student_id: int) -> int:
        return len(await self.resolver.assignments_in_scope(student_id, active_only=True))


def clamp_percentage(value: float) -> float:
    return max(0.0, min(100.0, value))


def format_decimal(value: float) -> str:
    return f"{value:.2f}"


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _usable_progress(rows: Sequence[ProgressRecord], student_id: int) -> List[ProgressRecord]:
    usable = []
    for row in rows:
        if not row.lesson_exists:
            logger.warning(
                f"[AGGREGATE] student={student_id} skipping progress for missing lesson={row.lesson_id}"
            )
            continue
        if row.status is None:
            logger.warning(
                f"[AGGREGATE] student={student_id} skipping progress for lesson={row.lesson_id}: "
                f"unreadable status"
            )
            continue
        usable.append(row)
    return usable


def _usable_submissions(rows: Sequence[SubmissionRecord], student_id: int) -> List[SubmissionRecord]:
    usable = []
    for row in rows:
        if row.status is None:
            reason = "unreadable status"
        elif not row.assignment_exists:
            reason = "missing assignment"
        elif not row.assignment_active:
            reason = "inactive assignment"
        elif row.max_points is None or row.max_points <= 0:
            reason = f"assignment max_points={row.max_points}"
        else:
            usable.append(row)
            continue
        logger.warning(
            f"[AGGREGATE] student={student_id} skipping submission={row.submission_id} "
            f"(assignment={row.assignment_id}): {reason}"
        )
    return usable


def summarize(
    student_id: int,
    progress_rows: Sequence[ProgressRecord],
    total_lessons: int,
    submission_rows: Sequence[SubmissionRecord],
    total_assignments: int,
) -> StudentProgress:
    """Pure aggregation over already-fetched rows."""
    progress_rows = _usable_progress(progress_rows, student_id)
    submission_rows = _usable_submissions(submission_rows, student_id)

    # Lessons
    viewed = sum(1 for row in progress_rows if row.status in VIEWED_STATUSES)
    completed_rows = [row for row in progress_rows if row.status == LessonStatus.COMPLETED]
    completed = len(completed_rows)
    lesson_rate = clamp_percentage(completed / total_lessons * 100) if total_lessons > 0 else 0.0
    lesson_scores = [row.score for row in completed_rows if row.score is not None]
    lesson_average = clamp_percentage(_mean(lesson_scores))

    # Assignments
    submitted = sum(1 for row in submission_rows if row.status in HANDED_IN_STATUSES)
    graded_rows = [row for row in submission_rows if row.status == SubmissionStatus.GRADED]
    graded = len(graded_rows)
    submission_rate = clamp_percentage(submitted / total_assignments * 100) if total_assignments > 0 else 0.0
    assignment_percentages = [
        row.score / row.max_points * 100 for row in graded_rows if row.score is not None
    ]
    assignment_average = clamp_percentage(_mean(assignment_percentages))

    # Overall
    overall_progress = clamp_percentage(LESSON_WEIGHT * lesson_rate + ASSIGNMENT_WEIGHT * submission_rate)
    scored_samples = len(lesson_scores) + len(assignment_percentages)
    if scored_samples:
        overall_average = clamp_percentage(
            (lesson_average * len(lesson_scores) + assignment_average * len(assignment_percentages))
            / scored_samples
        )
    else:
        overall_average = 0.0
    total_time = int(sum(row.time_spent or 0 for row in progress_rows))

    return StudentProgress(
        lessons=LessonProgressStats(
            viewed=viewed,
            completed=completed,
            total=total_lessons,
            completion_rate=format_decimal(lesson_rate),
            average_score=format_decimal(lesson_average),
        ),
        assignments=AssignmentProgressStats(
            submitted=submitted,
            graded=graded,
            total=total_assignments,
            submission_rate=format_decimal(submission_rate),
            average_score=format_decimal(assignment_average),
        ),
        overall=OverallProgressStats(
            progress=format_decimal(overall_progress),
            average_score=format_decimal(overall_average),
            total_time_spent=total_time,
        ),
    )


class ActivityAggregator:
    """Fetches a student's rows from a data source and summarizes them."""

    def __init__(self, source: ProgressDataSource):
        self.source = source

    async def compute(self, student_id: int) -> StudentProgress:
        progress_rows = await self.source.progress_rows(student_id)
        total_lessons = await self.source.active_lesson_count()
        submission_rows = await self.source.submission_rows(student_id)
        total_assignments = await self.source.assignments_in_scope_count(student_id)

        report = summarize(student_id, progress_rows, total_lessons, submission_rows, total_assignments)
        logger.debug(
            f"[AGGREGATE] student={student_id} progress={report.overall.progress} "
            f"average={report.overall.average_score}"
        )
        return report
