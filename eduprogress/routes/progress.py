"""
eduprogress/routes/progress.py
Student progress views

ENDPOINTS:
- GET  /api/progress/me                       own progress (student)
- GET  /api/progress/all                      paginated progress rows (admin, teacher)
- GET  /api/progress/students/{id}            one student
- GET  /api/progress/students/{id}/detailed   one student + recent activity
- POST /api/progress/students/batch           several students, input order kept

Every figure comes from the Activity Aggregator via the progress service.
"""
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from eduprogress.database import get_db
from eduprogress.orm.user import UserRole
from eduprogress.schemas.progress import BatchProgressRequest, StandardResponse
from eduprogress.security.principal import Principal, require_roles
from eduprogress.services import progress_service
from eduprogress.services.permission_guards import permission_required, require_student_access

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/progress", tags=["Progress"])


@router.get("/me", response_model=StandardResponse)
async def get_my_progress(
    principal: Principal = Depends(require_roles(UserRole.student)),
    db: AsyncSession = Depends(get_db)
):
    report = await progress_service.get_student_progress(db, principal.id)
    return StandardResponse(
        message="Progress retrieved successfully",
        data=report.model_dump(by_alias=True)
    )


@router.get("/all", response_model=StandardResponse)
async def list_all_progress(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    principal: Principal = Depends(require_roles(UserRole.admin, UserRole.teacher)),
    db: AsyncSession = Depends(get_db)
):
    """Raw lesson progress rows, newest update first. Teachers only see their own students."""
    result = await progress_service.list_all_progress(db, principal, page=page, limit=limit)
    return StandardResponse(
        message="All progress retrieved successfully",
        data=result.model_dump(by_alias=True)
    )


@router.get("/students/{student_id}", response_model=StandardResponse)
async def get_student_progress(
    student_id: int,
    principal: Principal = Depends(permission_required("progress", "read")),
    db: AsyncSession = Depends(get_db)
):
    await require_student_access(db, principal, student_id)
    report = await progress_service.get_student_progress(db, student_id)
    return StandardResponse(
        message="Progress retrieved successfully",
        data=report.model_dump(by_alias=True)
    )


@router.get("/students/{student_id}/detailed", response_model=StandardResponse)
async def get_detailed_progress(
    student_id: int,
    principal: Principal = Depends(permission_required("progress", "read")),
    db: AsyncSession = Depends(get_db)
):
    """
    Progress plus recentActivity.lessons / recentActivity.submissions, most
    recently updated first.
    """
    await require_student_access(db, principal, student_id)
    report = await progress_service.get_detailed_progress(db, student_id)
    return StandardResponse(
        message="Detailed progress retrieved successfully",
        data=report.model_dump(by_alias=True)
    )


@router.post("/students/batch", response_model=StandardResponse)
async def get_multiple_students_progress(
    request: BatchProgressRequest,
    principal: Principal = Depends(require_roles(UserRole.teacher, UserRole.parent, UserRole.admin)),
    db: AsyncSession = Depends(get_db)
):
    """
    Teacher / parent dashboard view. Access is checked for every requested
    student before anything is computed.
    """
    for student_id in request.student_ids:
        await require_student_access(db, principal, student_id)

    entries = await progress_service.get_multiple_students_progress(db, request.student_ids)
    return StandardResponse(
        message=f"Progress retrieved for {len(entries)} students",
        data=[entry.model_dump(by_alias=True) for entry in entries]
    )
