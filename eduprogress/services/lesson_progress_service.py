"""
Lesson Progress Service

Progress rows are created lazily by start_lesson. Creation is
create-if-absent: a concurrent start for the same (student, lesson) pair
collides on the unique constraint and the loser re-reads the winner's row.
"""
import logging
import math
from datetime import datetime
from typing import Any, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eduprogress.exceptions import NotFoundError, ValidationFailedError
from eduprogress.orm.lesson import Lesson
from eduprogress.orm.lesson_progress import LessonProgress, LessonStatus

logger = logging.getLogger(__name__)

MAX_LESSON_SCORE = 100


def validate_lesson_score(score: Any) -> Optional[float]:
    if score is None:
        return None
    if isinstance(score, bool):
        raise ValidationFailedError("Score must be a number", field="score", value=score)
    try:
        value = float(score)
    except (TypeError, ValueError):
        raise ValidationFailedError("Score must be a number", field="score", value=score)
    if not math.isfinite(value) or value < 0 or value > MAX_LESSON_SCORE:
        raise ValidationFailedError(
            f"Score must be between 0 and {MAX_LESSON_SCORE}", field="score", value=score
        )
    return value


def validate_time_delta(time_spent: Any) -> int:
    if time_spent is None:
        return 0
    if isinstance(time_spent, bool) or not isinstance(time_spent, int) or time_spent < 0:
        raise ValidationFailedError(
            "Time spent must be a non-negative number of minutes", field="timeSpent", value=time_spent
        )
    return time_spent


async def _find_progress(db: AsyncSession, student_id: int, lesson_id: int) -> Optional[LessonProgress]:
    result = await db.execute(
        select(LessonProgress).where(
            LessonProgress.student_id == student_id,
            LessonProgress.lesson_id == lesson_id
        )
    )
    return result.scalar_one_or_none()


async def _get_progress_or_404(db: AsyncSession, student_id: int, lesson_id: int) -> LessonProgress:
    progress = await _find_progress(db, student_id, lesson_id)
    if progress is None:
        raise NotFoundError("Progress for lesson", lesson_id)
    return progress


def _apply_status(progress: LessonProgress, status: LessonStatus) -> None:
    if status == LessonStatus.COMPLETED and progress.status != LessonStatus.COMPLETED:
        progress.completed_at = datetime.utcnow()
    progress.status = status


async def get_lesson_progress(db: AsyncSession, student_id: int, lesson_id: int) -> LessonProgress:
    return await _get_progress_or_404(db, student_id, lesson_id)


async def start_lesson(db: AsyncSession, student_id: int, lesson_id: int) -> Tuple[LessonProgress, bool]:
    """
    Start (or resume) a lesson.

    Returns:
        (progress, created): created is True only when this call inserted
        the row.
    """
    lesson = await db.get(Lesson, lesson_id)
    if lesson is None:
        raise NotFoundError("Lesson", lesson_id)

    progress = await _find_progress(db, student_id, lesson_id)
    if progress is not None:
        if progress.status == LessonStatus.NOT_STARTED:
            progress.status = LessonStatus.IN_PROGRESS
            await db.commit()
            await db.refresh(progress)
        return progress, False

    progress = LessonProgress(
        student_id=student_id,
        lesson_id=lesson_id,
        status=LessonStatus.IN_PROGRESS,
        time_spent=0,
    )
    db.add(progress)
    try:
        await db.flush()
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info(f"[PROGRESS] Concurrent start for student={student_id} lesson={lesson_id}; re-reading")
        existing = await _get_progress_or_404(db, student_id, lesson_id)
        return existing, False

    logger.info(f"[PROGRESS] Started lesson={lesson_id} student={student_id}")
    return progress, True


async def update_progress(
    db: AsyncSession,
    student_id: int,
    lesson_id: int,
    status: Optional[LessonStatus] = None,
    score: Any = None,
    time_spent: Any = None,
    notes: Optional[str] = None
) -> LessonProgress:
    """
    Patch a progress row. time_spent is a delta added to the accumulated
    total. All inputs are validated before the row is touched.
    """
    score_value = validate_lesson_score(score)
    delta = validate_time_delta(time_spent)

    progress = await _get_progress_or_404(db, student_id, lesson_id)

    if status is not None:
        _apply_status(progress, LessonStatus(status))
    if score_value is not None:
        progress.score = score_value
    if delta:
        progress.time_spent = (progress.time_spent or 0) + delta
    if notes:
        progress.notes = notes

    await db.commit()
    await db.refresh(progress)
    return progress


async def complete_lesson(
    db: AsyncSession,
    student_id: int,
    lesson_id: int,
    score: Any = None,
    notes: Optional[str] = None
) -> LessonProgress:
    score_value = validate_lesson_score(score)
    progress = await _get_progress_or_404(db, student_id, lesson_id)

    _apply_status(progress, LessonStatus.COMPLETED)
    if score_value is not None:
        progress.score = score_value
    if notes is not None:
        progress.notes = notes

    await db.commit()
    await db.refresh(progress)
    logger.info(f"[PROGRESS] Completed lesson={lesson_id} student={student_id} score={progress.score}")
    return progress
