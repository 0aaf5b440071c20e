"""
Submission Service

Creation, student edits, grading, re-grading and returning of submissions.

Concurrency rules:
- Duplicate (assignment, student) pairs are rejected by the storage unique
  constraint only. There is no read-before-insert check; the IntegrityError
  becomes DuplicateSubmissionError (409).
- Every status change is a single conditional UPDATE guarded by the set of
  states it may start from. Zero affected rows means the submission moved
  underneath us and the request is rejected, never retried. The one
  exception is grading: if the row now holds the identical grade, the
  request already succeeded and is answered as a no-op.
"""
import logging
import math
from datetime import datetime
from typing import Any, Dict, Optional, Sequence, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eduprogress.config.settings import Settings
from eduprogress.exceptions import (
    NotFoundError,
    ForbiddenError,
    ValidationFailedError,
    ScoreOutOfRangeError,
    InvalidStateTransitionError,
    DuplicateSubmissionError,
)
from eduprogress.orm.assignment import Assignment
from eduprogress.orm.submission import Submission, SubmissionStatus
from eduprogress.orm.user import UserRole
from eduprogress.security.principal import Principal
from eduprogress.services.audience_resolver import AudienceResolver
from eduprogress.state_machines.submission_state import SubmissionStateMachine

logger = logging.getLogger(__name__)

# (minimum percentage, letter), checked top-down
GRADE_BOUNDARIES = [
    (97, "A+"),
    (93, "A"),
    (90, "A-"),
    (87, "B+"),
    (83, "B"),
    (80, "B-"),
    (77, "C+"),
    (73, "C"),
    (70, "C-"),
    (67, "D+"),
    (63, "D"),
    (60, "D-"),
]


def grade_letter(percentage: float) -> str:
    for minimum, letter in GRADE_BOUNDARIES:
        if percentage >= minimum:
            return letter
    return "F"


def normalize_feedback(feedback: Optional[str]) -> Optional[str]:
    """Trimmed, empty → None, capped at FEEDBACK_MAX_LENGTH characters."""
    if feedback is None:
        return None
    trimmed = feedback.strip()
    if not trimmed:
        return None
    return trimmed[:Settings.FEEDBACK_MAX_LENGTH]


def validate_score(score: Any, max_points: float) -> float:
    """Score must be a finite number in [0, max_points]."""
    if score is None or isinstance(score, bool):
        raise ValidationFailedError("Score is required", field="score", value=score)
    try:
        value = float(score)
    except (TypeError, ValueError):
        raise ValidationFailedError("Score must be a number", field="score", value=score)
    if not math.isfinite(value) or value < 0 or value > max_points:
        raise ScoreOutOfRangeError(value, max_points)
    return value


def _require_role(principal: Principal, role: UserRole, action: str) -> None:
    if principal.role != role:
        raise ForbiddenError(f"Only {role.value}s can {action}")


async def _current_status(db: AsyncSession, submission_id: int) -> Optional[SubmissionStatus]:
    result = await db.execute(select(Submission.status).where(Submission.id == submission_id))
    return result.scalar_one_or_none()


async def _load_for_teacher(
    db: AsyncSession,
    principal: Principal,
    submission_id: int
) -> Tuple[Submission, Assignment]:
    """Submission and its assignment, checked for teacher ownership."""
    _require_role(principal, UserRole.teacher, "grade submissions")

    submission = await db.get(Submission, submission_id)
    if submission is None:
        raise NotFoundError("Submission", submission_id)

    assignment = await db.get(Assignment, submission.assignment_id)
    if assignment is None:
        raise NotFoundError("Assignment", submission.assignment_id)

    if assignment.teacher_id != principal.id:
        raise ForbiddenError("You can only grade submissions for your assignments")

    return submission, assignment


async def create_submission(
    db: AsyncSession,
    principal: Principal,
    assignment_id: int,
    content: Optional[str] = None,
    resolver: Optional[AudienceResolver] = None
) -> Submission:
    """
    Hand in work for an assignment.

    Raises:
        ForbiddenError: caller is not a student, or not in the audience
        NotFoundError: assignment missing or inactive
        DuplicateSubmissionError: a submission already exists for the pair
    """
    _require_role(principal, UserRole.student, "submit assignments")

    assignment = await db.get(Assignment, assignment_id)
    if assignment is None or not assignment.is_active:
        raise NotFoundError("Assignment", assignment_id)

    resolver = resolver or AudienceResolver(db)
    if not await resolver.is_in_scope(assignment, principal.id):
        raise ForbiddenError("You are not assigned to this assignment")

    submission = Submission(assignment_id=assignment_id, student_id=principal.id)
    submission.mark_submitted(content)
    db.add(submission)

    try:
        await db.flush()
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info(
            f"[SUBMISSION] Duplicate rejected by constraint: assignment={assignment_id} student={principal.id}"
        )
        raise DuplicateSubmissionError(assignment_id, principal.id)

    logger.info(f"[SUBMISSION] Created submission={submission.id} assignment={assignment_id} student={principal.id}")
    return submission


async def update_submission(
    db: AsyncSession,
    principal: Principal,
    submission_id: int,
    content: Optional[str] = None
) -> Submission:
    """
    Student edit / re-submission. Rejected once graded; a returned
    submission may be revised and goes back to submitted.
    """
    _require_role(principal, UserRole.student, "edit submissions")

    result = await db.execute(
        select(Submission).where(
            Submission.id == submission_id,
            Submission.student_id == principal.id
        )
    )
    submission = result.scalar_one_or_none()
    if submission is None:
        raise NotFoundError("Submission", submission_id)

    if not SubmissionStateMachine.is_editable(submission.status):
        raise InvalidStateTransitionError(
            submission.status.value,
            SubmissionStatus.SUBMITTED.value,
            "Cannot update a graded submission"
        )

    now = datetime.utcnow()
    values: Dict[str, Any] = {
        "status": SubmissionStatus.SUBMITTED,
        "submitted_at": now,
        "updated_at": now,
    }
    if content is not None:
        values["content"] = content

    result = await db.execute(
        update(Submission)
        .where(
            Submission.id == submission_id,
            Submission.status.in_(SubmissionStateMachine.EDITABLE_STATES)
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        current = await _current_status(db, submission_id)
        raise InvalidStateTransitionError(
            current.value if current else "missing",
            SubmissionStatus.SUBMITTED.value,
            "Cannot update a graded submission"
        )

    await db.commit()
    await db.refresh(submission)
    logger.info(f"[SUBMISSION] Re-submitted submission={submission_id} student={principal.id}")
    return submission


def _has_grade(submission: Submission, score: float, feedback: Optional[str]) -> bool:
    return (
        submission.status == SubmissionStatus.GRADED
        and submission.score == score
        and submission.feedback == feedback
    )


async def _apply_grade(
    db: AsyncSession,
    principal: Principal,
    submission_id: int,
    score: Any,
    feedback: Optional[str],
    from_states: Sequence[SubmissionStatus],
    allow_identical_repeat: bool
) -> Dict[str, Any]:
    submission, assignment = await _load_for_teacher(db, principal, submission_id)
    score_value = validate_score(score, assignment.max_points)
    final_feedback = normalize_feedback(feedback)

    if allow_identical_repeat and _has_grade(submission, score_value, final_feedback):
        logger.info(f"[GRADE] submission={submission_id} already graded with identical score; no-op")
        return grade_response(submission, assignment)

    now = datetime.utcnow()
    result = await db.execute(
        update(Submission)
        .where(
            Submission.id == submission_id,
            Submission.status.in_(list(from_states))
        )
        .values(
            score=score_value,
            feedback=final_feedback,
            status=SubmissionStatus.GRADED,
            graded_at=now,
            graded_by=principal.id,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        # A concurrent request may have stored this exact grade first
        reread = await db.execute(
            select(Submission)
            .where(Submission.id == submission_id)
            .execution_options(populate_existing=True)
        )
        current = reread.scalar_one_or_none()
        if current is None:
            raise NotFoundError("Submission", submission_id)
        if allow_identical_repeat and _has_grade(current, score_value, final_feedback):
            logger.info(f"[GRADE] submission={submission_id} graded concurrently with identical score; no-op")
            return grade_response(current, assignment)
        raise InvalidStateTransitionError(
            current.status.value,
            SubmissionStatus.GRADED.value
        )

    await db.commit()
    await db.refresh(submission)
    logger.info(
        f"[GRADE] submission={submission_id} score={score_value}/{assignment.max_points:g} "
        f"grader={principal.id}"
    )
    return grade_response(submission, assignment)


def grade_response(submission: Submission, assignment: Assignment) -> Dict[str, Any]:
    percentage = submission.score / assignment.max_points * 100 if submission.score is not None else 0.0
    data = submission.to_dict()
    data.update({
        "maxPoints": assignment.max_points,
        "percentage": round(percentage, 2),
        "gradeLetter": grade_letter(percentage),
    })
    return data


async def grade_submission(
    db: AsyncSession,
    principal: Principal,
    submission_id: int,
    score: Any,
    feedback: Optional[str] = None
) -> Dict[str, Any]:
    """
    First grade of a submitted piece of work.

    Repeating the exact same grade on an already graded submission is a
    no-op so clients can retry safely. Any other grade on graded work must
    go through regrade_submission.
    """
    return await _apply_grade(
        db, principal, submission_id, score, feedback,
        from_states=SubmissionStateMachine.GRADABLE_STATES,
        allow_identical_repeat=True,
    )


async def regrade_submission(
    db: AsyncSession,
    principal: Principal,
    submission_id: int,
    score: Any,
    feedback: Optional[str] = None
) -> Dict[str, Any]:
    """Replace the grade of graded or returned work."""
    return await _apply_grade(
        db, principal, submission_id, score, feedback,
        from_states=SubmissionStateMachine.REGRADABLE_STATES,
        allow_identical_repeat=False,
    )


async def return_submission(
    db: AsyncSession,
    principal: Principal,
    submission_id: int
) -> Submission:
    """Hand graded work back to the student (graded → returned)."""
    submission, _ = await _load_for_teacher(db, principal, submission_id)
    SubmissionStateMachine.validate_transition(submission.status, SubmissionStatus.RETURNED)

    result = await db.execute(
        update(Submission)
        .where(
            Submission.id == submission_id,
            Submission.status.in_(SubmissionStateMachine.RETURNABLE_STATES)
        )
        .values(status=SubmissionStatus.RETURNED, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        current = await _current_status(db, submission_id)
        raise InvalidStateTransitionError(
            current.value if current else "missing",
            SubmissionStatus.RETURNED.value
        )

    await db.commit()
    await db.refresh(submission)
    logger.info(f"[SUBMISSION] Returned submission={submission_id} by teacher={principal.id}")
    return submission
