"""
eduprogress/routes/assignments.py
Assignment audience and statistics views
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from eduprogress.database import get_db
from eduprogress.exceptions import NotFoundError
from eduprogress.orm.assignment import Assignment
from eduprogress.orm.user import UserRole
from eduprogress.schemas.progress import StandardResponse
from eduprogress.security.principal import Principal, require_roles
from eduprogress.services import assignment_stats_service
from eduprogress.services.assignment_stats_service import CompletionStatus
from eduprogress.services.audience_resolver import AudienceResolver, audience_of
from eduprogress.services.permission_guards import require_assignment_access

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assignments", tags=["Assignments"])


@router.get("/teacher/stats", response_model=StandardResponse)
async def get_teacher_assignment_stats(
    include_inactive: bool = Query(False, alias="includeInactive"),
    completion_status: Optional[CompletionStatus] = Query(None, alias="completionStatus"),
    principal: Principal = Depends(require_roles(UserRole.teacher)),
    db: AsyncSession = Depends(get_db)
):
    entries = await assignment_stats_service.get_teacher_assignment_stats(
        db, principal.id, include_inactive=include_inactive, completion=completion_status
    )
    return StandardResponse(message="Assignments retrieved successfully", data=entries)


@router.get("/student", response_model=StandardResponse)
async def list_student_assignments(
    principal: Principal = Depends(require_roles(UserRole.student)),
    db: AsyncSession = Depends(get_db)
):
    entries = await assignment_stats_service.list_student_assignments(db, principal.id)
    return StandardResponse(message="Assignments retrieved successfully", data=entries)


@router.get("/{assignment_id}/roster", response_model=StandardResponse)
async def get_assignment_roster(
    assignment_id: int,
    principal: Principal = Depends(require_roles(UserRole.teacher, UserRole.admin)),
    db: AsyncSession = Depends(get_db)
):
    """Effective roster: the explicit audience, or every enrolled student."""
    assignment = await db.get(Assignment, assignment_id)
    if assignment is None:
        raise NotFoundError("Assignment", assignment_id)
    await require_assignment_access(db, principal, assignment)

    roster = await AudienceResolver(db).effective_roster(assignment)
    return StandardResponse(
        message="Roster retrieved successfully",
        data={
            "assignmentId": assignment.id,
            "audience": audience_of(assignment).kind.value,
            "studentIds": roster,
            "totalAssigned": len(roster),
        }
    )
