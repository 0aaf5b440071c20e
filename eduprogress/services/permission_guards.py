"""
eduprogress/services/permission_guards.py
Role permissions and visibility checks

Role-level permissions come from a static matrix; per-record visibility
(which student / which assignment) is decided here from enrollment, parent
links and the Audience Resolver.
"""
import logging
from typing import Callable, Dict, List, Optional

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eduprogress.exceptions import ForbiddenError
from eduprogress.orm.assignment import Assignment
from eduprogress.orm.user import StudentParent, UserRole
from eduprogress.security.principal import Principal, get_current_principal
from eduprogress.services.audience_resolver import AudienceResolver
from eduprogress.services.roster_index import RosterIndex

logger = logging.getLogger(__name__)


# Permission Matrix
# Role     | lessons | assignments | grades | submissions        | students | progress
# admin    | manage  | manage      | manage | manage             | manage   | manage
# teacher  | manage  | manage      | manage | read/update/grade  | read     | read
# student  | read    | read        | read   | create/read/update | -        | read (own)
# parent   | read    | read        | read   | read               | read     | read (children)
MANAGE = "manage"

PERMISSIONS: Dict[UserRole, Dict[str, List[str]]] = {
    UserRole.teacher: {
        "lessons": ["create", "read", "update", "delete", MANAGE],
        "assignments": ["create", "read", "update", "delete", MANAGE],
        "grades": ["create", "read", "update", MANAGE],
        "submissions": ["read", "update", "grade"],
        "students": ["read"],
        "progress": ["read"],
    },
    UserRole.student: {
        "lessons": ["read", "view"],
        "assignments": ["read", "view"],
        "grades": ["read"],
        "submissions": ["create", "read", "update"],
        "students": [],
        "progress": ["read"],
    },
    UserRole.parent: {
        "lessons": ["read"],
        "assignments": ["read"],
        "grades": ["read"],
        "submissions": ["read"],
        "students": ["read"],
        "progress": ["read"],
    },
    UserRole.admin: {
        "lessons": ["create", "read", "update", "delete", MANAGE],
        "assignments": ["create", "read", "update", "delete", MANAGE],
        "grades": ["create", "read", "update", "delete", MANAGE],
        "submissions": ["create", "read", "update", "delete", MANAGE],
        "students": ["create", "read", "update", "delete", MANAGE],
        "progress": ["read", MANAGE],
    },
}


def has_permission(role: UserRole, resource: str, action: str) -> bool:
    """True when the role may perform action on resource; 'manage' grants all."""
    allowed = PERMISSIONS.get(role, {}).get(resource)
    if not allowed:
        return False
    return action in allowed or MANAGE in allowed


def permission_required(resource: str, action: str) -> Callable:
    """FastAPI dependency factory enforcing the permission matrix."""

    async def _dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not has_permission(principal.role, resource, action):
            logger.warning(
                f"[PERMISSION] Denied {principal.role.value}={principal.id} {action} on {resource}"
            )
            raise ForbiddenError(
                f"Access denied. {principal.role.value} role does not have {action} permission for {resource}"
            )
        return principal

    return _dependency


async def is_parent_of(db: AsyncSession, parent_id: int, student_id: int) -> bool:
    result = await db.execute(
        select(StudentParent.id).where(
            StudentParent.parent_id == parent_id,
            StudentParent.student_id == student_id
        ).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def children_of(db: AsyncSession, parent_id: int) -> List[int]:
    result = await db.execute(
        select(StudentParent.student_id)
        .where(StudentParent.parent_id == parent_id)
        .order_by(StudentParent.student_id)
    )
    return list(result.scalars().all())


async def can_view_student(db: AsyncSession, principal: Principal, student_id: int) -> bool:
    """
    - admin: always
    - student: only themselves
    - parent: linked children
    - teacher: enrolled students
    """
    if principal.role == UserRole.admin:
        return True
    if principal.role == UserRole.student:
        return principal.id == student_id
    if principal.role == UserRole.parent:
        return await is_parent_of(db, principal.id, student_id)
    if principal.role == UserRole.teacher:
        return await RosterIndex(db).is_enrolled(principal.id, student_id)
    return False


async def require_student_access(db: AsyncSession, principal: Principal, student_id: int) -> None:
    if not await can_view_student(db, principal, student_id):
        logger.warning(
            f"[PERMISSION] {principal.role.value}={principal.id} denied access to student={student_id}"
        )
        raise ForbiddenError("Access denied. You can only access your own resources.")


async def can_view_assignment(
    db: AsyncSession,
    principal: Principal,
    assignment: Assignment,
    resolver: Optional[AudienceResolver] = None
) -> bool:
    """
    - admin: always
    - teacher: owner only
    - student: in scope
    - parent: any linked child in scope
    """
    if principal.role == UserRole.admin:
        return True
    if principal.role == UserRole.teacher:
        return assignment.teacher_id == principal.id

    resolver = resolver or AudienceResolver(db)
    if principal.role == UserRole.student:
        return await resolver.is_in_scope(assignment, principal.id)
    if principal.role == UserRole.parent:
        for child_id in await children_of(db, principal.id):
            if await resolver.is_in_scope(assignment, child_id):
                return True
    return False


async def require_assignment_access(db: AsyncSession, principal: Principal, assignment: Assignment) -> None:
    if not await can_view_assignment(db, principal, assignment):
        logger.warning(
            f"[PERMISSION] {principal.role.value}={principal.id} denied access to assignment={assignment.id}"
        )
        raise ForbiddenError("You do not have access to this assignment")
