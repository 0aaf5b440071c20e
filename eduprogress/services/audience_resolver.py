"""
Audience Resolver

Single authoritative answer to:
- "is student S in scope for assignment A?"
- "what is the effective roster of assignment A?"

Every caller (assignment listing, permission checks, teacher statistics,
progress aggregation) goes through this module.

Policy:
- Explicit audience (non-empty assignedTo) is authoritative. Enrollment is
  NOT rechecked: a listed student stays in scope after being unenrolled.
- Empty assignedTo is the ALL_ENROLLED sentinel: the teacher's current
  enrollment decides, at read time.
- No exclusion mode. "Everyone except X" must be enumerated explicitly.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import select, and_, or_, exists
from sqlalchemy.ext.asyncio import AsyncSession

from eduprogress.orm.assignment import Assignment, AssignmentAudienceMember
from eduprogress.services.roster_index import RosterIndex

logger = logging.getLogger(__name__)


class AudienceKind(str, Enum):
    ALL_ENROLLED = "all_enrolled"
    SPECIFIC = "specific"


@dataclass(frozen=True)
class Audience:
    """
    Tagged audience value.

    The stored empty list is translated into ALL_ENROLLED here and nowhere
    else, so an empty list can never be read as "no one".
    """
    kind: AudienceKind
    student_ids: Tuple[int, ...] = ()

    @classmethod
    def all_enrolled(cls) -> "Audience":
        return cls(AudienceKind.ALL_ENROLLED)

    @classmethod
    def specific(cls, student_ids: Iterable[int]) -> "Audience":
        ordered = tuple(dict.fromkeys(student_ids))
        if not ordered:
            raise ValueError("A specific audience needs at least one student; use Audience.all_enrolled()")
        return cls(AudienceKind.SPECIFIC, ordered)

    @classmethod
    def from_assigned_to(cls, assigned_to: Optional[Iterable[int]]) -> "Audience":
        ids = list(assigned_to or [])
        return cls.specific(ids) if ids else cls.all_enrolled()

    @property
    def is_specific(self) -> bool:
        return self.kind == AudienceKind.SPECIFIC


def audience_of(assignment: Assignment) -> Audience:
    return Audience.from_assigned_to(assignment.assigned_to)


def student_in_audience(
    audience: Audience,
    teacher_id: int,
    student_id: int,
    student_teacher_ids: Set[int]
) -> bool:
    """
    Pure scope predicate.

    student_teacher_ids is the student's enrollment set from the Roster
    Index; it is only consulted for the ALL_ENROLLED sentinel.
    """
    if audience.is_specific:
        return student_id in audience.student_ids
    return teacher_id in student_teacher_ids


class AudienceResolver:
    """Scope and roster decisions for assignments. No side effects."""

    def __init__(self, db: AsyncSession, roster: Optional[RosterIndex] = None):
        self.db = db
        self.roster = roster or RosterIndex(db)

    async def is_in_scope(self, assignment: Assignment, student_id: int) -> bool:
        audience = audience_of(assignment)
        if audience.is_specific:
            return student_id in audience.student_ids
        return await self.roster.is_enrolled(assignment.teacher_id, student_id)

    async def effective_roster(self, assignment: Assignment) -> List[int]:
        """
        Explicit audience verbatim (stored order, no existence check), or the
        teacher's currently enrolled students in ascending id order.
        """
        audience = audience_of(assignment)
        if audience.is_specific:
            return list(audience.student_ids)
        return sorted(await self.roster.enrolled_students(assignment.teacher_id))

    async def total_assigned(self, assignment: Assignment) -> int:
        return len(await self.effective_roster(assignment))

    async def effective_rosters(self, assignments: Iterable[Assignment]) -> Dict[int, List[int]]:
        """
        Rosters for many assignments, looking up each teacher's enrollment
        once. Same rules as effective_roster.
        """
        enrolled_by_teacher: Dict[int, List[int]] = {}
        rosters: Dict[int, List[int]] = {}
        for assignment in assignments:
            audience = audience_of(assignment)
            if audience.is_specific:
                rosters[assignment.id] = list(audience.student_ids)
                continue
            if assignment.teacher_id not in enrolled_by_teacher:
                enrolled_by_teacher[assignment.teacher_id] = sorted(
                    await self.roster.enrolled_students(assignment.teacher_id)
                )
            rosters[assignment.id] = list(enrolled_by_teacher[assignment.teacher_id])
        return rosters

    async def assignments_in_scope(self, student_id: int, active_only: bool = True) -> List[Assignment]:
        """
        Assignments visible to a student.

        SQL narrows the candidates (explicitly listed, or sentinel assignments
        of an enrolled teacher); the final decision is always the same
        predicate as is_in_scope so listings never disagree with it.
        """
        teacher_ids = await self.roster.enrolled_teachers(student_id)

        explicitly_listed = select(AssignmentAudienceMember.assignment_id).where(
            AssignmentAudienceMember.student_id == student_id
        )
        has_explicit_audience = exists().where(
            AssignmentAudienceMember.assignment_id == Assignment.id
        )

        conditions = [
            or_(
                Assignment.id.in_(explicitly_listed),
                and_(~has_explicit_audience, Assignment.teacher_id.in_(sorted(teacher_ids)))
            )
        ]
        if active_only:
            conditions.append(Assignment.is_active == True)

        result = await self.db.execute(
            select(Assignment).where(*conditions).order_by(Assignment.due_date, Assignment.id)
        )
        candidates = result.scalars().all()

        in_scope = [
            assignment for assignment in candidates
            if student_in_audience(audience_of(assignment), assignment.teacher_id, student_id, teacher_ids)
        ]
        if len(in_scope) != len(candidates):
            logger.warning(
                f"[AUDIENCE] student={student_id} dropped {len(candidates) - len(in_scope)} "
                f"candidate assignment(s) rejected by the scope predicate"
            )
        return in_scope
