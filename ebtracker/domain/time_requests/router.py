"""Time request router - FastAPI endpoints for additional-hour requests"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ...auth import CurrentUser, get_current_user
from ...database import get_store
from ...shared.transitions import ActionRequest
from .schemas import TimeRequestCreate
from .service import TimeRequestService

router = APIRouter(prefix="/time-requests", tags=["Time Requests"])

__all__ = ["router"]


def get_time_request_service(store=Depends(get_store)) -> TimeRequestService:
    return TimeRequestService(store)


def _require_id(request_id: Optional[str]) -> str:
    if not request_id:
        raise HTTPException(status_code=400, detail="Request ID is required")
    return request_id


@router.get("")
async def get_time_requests(
    id: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    projectId: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    current_user: CurrentUser = Depends(get_current_user),
    service: TimeRequestService = Depends(get_time_request_service),
):
    if id:
        return {"success": True, "data": service.get_request(id, current_user)}
    requests = service.list_requests(current_user, status, projectId, limit)
    return {"success": True, "data": requests, "count": len(requests)}


@router.post("", status_code=201)
async def create_time_request(
    data: TimeRequestCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: TimeRequestService = Depends(get_time_request_service),
):
    request = service.create_request(data, current_user)
    return {"success": True, "id": request["id"], "data": request, "message": "Time request created successfully"}


@router.put("")
async def review_time_request(
    body: ActionRequest,
    id: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: TimeRequestService = Depends(get_time_request_service),
):
    request = service.apply_action(_require_id(id), body, current_user)
    return {"success": True, "data": request, "message": f"Time request {request['status']}"}


@router.delete("")
async def delete_time_request(
    id: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: TimeRequestService = Depends(get_time_request_service),
):
    service.delete_request(_require_id(id), current_user)
    return {"success": True, "message": "Time request deleted successfully"}
