"""
eduprogress/routes/submissions.py
Submission lifecycle endpoints

STATUS FLOW: draft → submitted → graded → returned
- POST /api/submissions                  student hands in (409 on duplicate)
- PUT  /api/submissions/{id}             student edits / re-submits
- POST /api/submissions/{id}/grade       teacher grades submitted work
- POST /api/submissions/{id}/regrade     teacher replaces an existing grade
- POST /api/submissions/{id}/return      teacher hands graded work back
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from eduprogress.database import get_db
from eduprogress.schemas.progress import StandardResponse
from eduprogress.schemas.submission import SubmissionCreateRequest, SubmissionUpdateRequest, GradeRequest
from eduprogress.security.principal import Principal
from eduprogress.services import submission_service
from eduprogress.services.permission_guards import permission_required

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/submissions", tags=["Submissions"])


@router.post("", response_model=StandardResponse, status_code=status.HTTP_201_CREATED)
async def create_submission(
    request: SubmissionCreateRequest,
    principal: Principal = Depends(permission_required("submissions", "create")),
    db: AsyncSession = Depends(get_db)
):
    submission = await submission_service.create_submission(
        db, principal, request.assignment_id, request.content
    )
    return StandardResponse(message="Submission created successfully", data=submission.to_dict())


@router.put("/{submission_id}", response_model=StandardResponse)
async def update_submission(
    submission_id: int,
    request: SubmissionUpdateRequest,
    principal: Principal = Depends(permission_required("submissions", "update")),
    db: AsyncSession = Depends(get_db)
):
    submission = await submission_service.update_submission(db, principal, submission_id, request.content)
    return StandardResponse(message="Submission updated successfully", data=submission.to_dict())


@router.post("/{submission_id}/grade", response_model=StandardResponse)
async def grade_submission(
    submission_id: int,
    request: GradeRequest,
    principal: Principal = Depends(permission_required("submissions", "grade")),
    db: AsyncSession = Depends(get_db)
):
    """Score is bounded by the assignment's maxPoints (400 otherwise)."""
    data = await submission_service.grade_submission(
        db, principal, submission_id, request.score, request.feedback
    )
    return StandardResponse(message="Submission graded successfully", data=data)


@router.post("/{submission_id}/regrade", response_model=StandardResponse)
async def regrade_submission(
    submission_id: int,
    request: GradeRequest,
    principal: Principal = Depends(permission_required("submissions", "grade")),
    db: AsyncSession = Depends(get_db)
):
    data = await submission_service.regrade_submission(
        db, principal, submission_id, request.score, request.feedback
    )
    return StandardResponse(message="Submission regraded successfully", data=data)


@router.post("/{submission_id}/return", response_model=StandardResponse)
async def return_submission(
    submission_id: int,
    principal: Principal = Depends(permission_required("submissions", "grade")),
    db: AsyncSession = Depends(get_db)
):
    submission = await submission_service.return_submission(db, principal, submission_id)
    return StandardResponse(message="Submission returned successfully", data=submission.to_dict())
