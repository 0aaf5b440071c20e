"""
eduprogress/routes/lessons.py
Lesson progress actions for the authenticated student
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from eduprogress.database import get_db
from eduprogress.orm.user import UserRole
from eduprogress.schemas.lesson_progress import LessonProgressUpdateRequest, CompleteLessonRequest
from eduprogress.schemas.progress import StandardResponse
from eduprogress.security.principal import Principal, require_roles
from eduprogress.services import lesson_progress_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lessons", tags=["Lesson Progress"])

student_only = require_roles(UserRole.student)


@router.get("/{lesson_id}/progress", response_model=StandardResponse)
async def get_lesson_progress(
    lesson_id: int,
    principal: Principal = Depends(student_only),
    db: AsyncSession = Depends(get_db)
):
    progress = await lesson_progress_service.get_lesson_progress(db, principal.id, lesson_id)
    return StandardResponse(message="Lesson progress retrieved successfully", data=progress.to_dict())


@router.post("/{lesson_id}/progress/start", response_model=StandardResponse)
async def start_lesson(
    lesson_id: int,
    response: Response,
    principal: Principal = Depends(student_only),
    db: AsyncSession = Depends(get_db)
):
    """201 when the progress row was created, 200 when it already existed."""
    progress, created = await lesson_progress_service.start_lesson(db, principal.id, lesson_id)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return StandardResponse(message="Lesson started successfully", data=progress.to_dict())


@router.patch("/{lesson_id}/progress", response_model=StandardResponse)
async def update_lesson_progress(
    lesson_id: int,
    request: LessonProgressUpdateRequest,
    principal: Principal = Depends(student_only),
    db: AsyncSession = Depends(get_db)
):
    progress = await lesson_progress_service.update_progress(
        db,
        principal.id,
        lesson_id,
        status=request.status,
        score=request.score,
        time_spent=request.time_spent,
        notes=request.notes,
    )
    return StandardResponse(message="Progress updated successfully", data=progress.to_dict())


@router.post("/{lesson_id}/progress/complete", response_model=StandardResponse)
async def complete_lesson(
    lesson_id: int,
    request: Optional[CompleteLessonRequest] = None,
    principal: Principal = Depends(student_only),
    db: AsyncSession = Depends(get_db)
):
    request = request or CompleteLessonRequest()
    progress = await lesson_progress_service.complete_lesson(
        db, principal.id, lesson_id, score=request.score, notes=request.notes
    )
    return StandardResponse(message="Lesson completed successfully", data=progress.to_dict())
