"""
Assignment Statistics Service

Teacher-facing submission statistics per assignment and the student-facing
list of assignments in scope. Both take their audience from the Audience
Resolver, so a submission only counts when its student is on the
assignment's effective roster.
"""
import logging
import math
from collections import defaultdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eduprogress.orm.assignment import Assignment
from eduprogress.orm.submission import Submission, SubmissionStatus, HANDED_IN_STATUSES
from eduprogress.services.audience_resolver import AudienceResolver

logger = logging.getLogger(__name__)


class CompletionStatus(str, Enum):
    NOT_STARTED = "not_started"
    PARTIAL = "partial"
    ALL_SUBMITTED = "all_submitted"
    ALL_GRADED = "all_graded"


def submission_stats(total_assigned: int, statuses: List[SubmissionStatus]) -> Dict[str, int]:
    submitted = sum(1 for status in statuses if status in HANDED_IN_STATUSES)
    graded = sum(1 for status in statuses if status == SubmissionStatus.GRADED)
    pending = sum(1 for status in statuses if status == SubmissionStatus.SUBMITTED)
    return {
        "total": total_assigned,
        "submitted": submitted,
        "graded": graded,
        "pending": pending,
        "notSubmitted": max(total_assigned - submitted, 0),
    }


def completion_status(stats: Dict[str, int]) -> CompletionStatus:
    total = stats["total"]
    if total > 0 and stats["graded"] == total:
        return CompletionStatus.ALL_GRADED
    if total > 0 and stats["submitted"] == total:
        return CompletionStatus.ALL_SUBMITTED
    if stats["submitted"] > 0:
        return CompletionStatus.PARTIAL
    return CompletionStatus.NOT_STARTED


def _assignment_dict(assignment: Assignment) -> Dict[str, Any]:
    data = assignment.summary()
    data.update({
        "teacherId": assignment.teacher_id,
        "lessonId": assignment.lesson_id,
        "description": assignment.description,
        "isActive": assignment.is_active,
        "assignedTo": assignment.assigned_to,
    })
    return data


async def get_teacher_assignment_stats(
    db: AsyncSession,
    teacher_id: int,
    include_inactive: bool = False,
    completion: Optional[CompletionStatus] = None,
    resolver: Optional[AudienceResolver] = None
) -> List[Dict[str, Any]]:
    """
    Every assignment of a teacher (newest first) with submissionStats and
    completionStatus. Optionally filtered by completion status.
    """
    resolver = resolver or AudienceResolver(db)

    query = select(Assignment).where(Assignment.teacher_id == teacher_id)
    if not include_inactive:
        query = query.where(Assignment.is_active == True)
    result = await db.execute(query.order_by(Assignment.created_at.desc(), Assignment.id.desc()))
    assignments = result.scalars().all()
    if not assignments:
        return []

    rosters = await resolver.effective_rosters(assignments)

    result = await db.execute(
        select(Submission.assignment_id, Submission.student_id, Submission.status).where(
            Submission.assignment_id.in_([assignment.id for assignment in assignments])
        )
    )
    statuses_by_assignment: Dict[int, List[SubmissionStatus]] = defaultdict(list)
    out_of_scope = 0
    roster_sets = {assignment_id: set(roster) for assignment_id, roster in rosters.items()}
    for assignment_id, student_id, status in result.all():
        if student_id in roster_sets[assignment_id]:
            statuses_by_assignment[assignment_id].append(status)
        else:
            out_of_scope += 1

    if out_of_scope:
        logger.info(f"[STATS] teacher={teacher_id} ignored {out_of_scope} submission(s) from students out of scope")

    entries = []
    for assignment in assignments:
        stats = submission_stats(len(rosters[assignment.id]), statuses_by_assignment[assignment.id])
        status = completion_status(stats)
        if completion is not None and status != completion:
            continue
        data = _assignment_dict(assignment)
        data["submissionStats"] = stats
        data["completionStatus"] = status.value
        entries.append(data)
    return entries


def _days_until(due_date: Optional[datetime], now: datetime) -> Optional[int]:
    if due_date is None:
        return None
    return math.ceil((due_date - now).total_seconds() / 86400)


async def list_student_assignments(
    db: AsyncSession,
    student_id: int,
    resolver: Optional[AudienceResolver] = None
) -> List[Dict[str, Any]]:
    """Active assignments in scope for a student, with the student's own submission."""
    resolver = resolver or AudienceResolver(db)
    assignments = await resolver.assignments_in_scope(student_id, active_only=True)
    if not assignments:
        return []

    result = await db.execute(
        select(Submission).where(
            Submission.student_id == student_id,
            Submission.assignment_id.in_([assignment.id for assignment in assignments])
        )
    )
    submissions = {submission.assignment_id: submission for submission in result.scalars().all()}

    now = datetime.utcnow()
    entries = []
    for assignment in assignments:
        submission = submissions.get(assignment.id)
        not_handed_in = submission is None or submission.status == SubmissionStatus.DRAFT
        data = _assignment_dict(assignment)
        data.update({
            "submission": submission.to_dict() if submission else None,
            "completionStatus": submission.status.value if submission else CompletionStatus.NOT_STARTED.value,
            "isOverdue": bool(assignment.due_date and assignment.due_date < now and not_handed_in),
            "daysUntilDue": _days_until(assignment.due_date, now),
        })
        entries.append(data)
    return entries
