"""Submission router - FastAPI endpoints for client submissions"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ...auth import CurrentUser, get_current_user
from ...database import get_store
from ...shared.transitions import ActionRequest
from .schemas import SubmissionCreate
from .service import SubmissionService

router = APIRouter(prefix="/submissions", tags=["Submissions"])

__all__ = ["router"]


def get_submission_service(store=Depends(get_store)) -> SubmissionService:
    return SubmissionService(store)


@router.get("")
async def get_submissions(
    projectId: Optional[str] = Query(None),
    clientFeedback: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
):
    # `status` is the older name of the clientFeedback filter
    submissions = service.list_submissions(current_user, projectId, clientFeedback or status)
    return {"success": True, "data": submissions}


@router.post("", status_code=201)
async def create_submission(
    data: SubmissionCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
):
    submission = service.create_submission(data, current_user)
    return {"success": True, "data": submission, "message": "Submission recorded successfully"}


@router.put("")
async def update_submission(
    request: ActionRequest,
    id: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
):
    if not id:
        raise HTTPException(status_code=400, detail="Submission ID is required")
    submission = service.apply_action(id, request, current_user)
    return {"success": True, "data": submission, "message": "Submission updated successfully"}
