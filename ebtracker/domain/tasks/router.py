"""Task router - FastAPI endpoints for design tasks"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ...auth import CurrentUser, get_current_user
from ...database import get_store
from ...shared.transitions import ActionRequest
from .schemas import TaskCreate
from .service import TaskService

router = APIRouter(prefix="/tasks", tags=["Tasks"])

__all__ = ["router"]


def get_task_service(store=Depends(get_store)) -> TaskService:
    return TaskService(store)


@router.get("")
async def get_tasks(
    projectId: Optional[str] = Query(None),
    designerUid: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    return {"success": True, "data": service.list_tasks(current_user, projectId, designerUid, status)}


@router.post("", status_code=201)
async def create_task(
    data: TaskCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    task = service.create_task(data, current_user)
    return {"success": True, "data": task, "message": "Task assigned successfully"}


@router.put("")
async def update_task(
    request: ActionRequest,
    id: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    if not id:
        raise HTTPException(status_code=400, detail="Task ID is required")
    task = service.apply_action(id, request, current_user)
    return {"success": True, "data": task, "message": "Task updated successfully"}
