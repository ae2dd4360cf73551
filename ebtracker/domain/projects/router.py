"""Project router - FastAPI endpoints for project allocation"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ...auth import CurrentUser, get_current_user
from ...database import get_store
from ...shared.transitions import ActionRequest
from .schemas import ProjectCreateRequest
from .service import ProjectService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["Projects"])

__all__ = ["router"]


def get_project_service(store=Depends(get_store)) -> ProjectService:
    """Dependency injection for ProjectService"""
    return ProjectService(store)


def _require_id(project_id: Optional[str]) -> str:
    if not project_id:
        raise HTTPException(status_code=400, detail="Missing project ID")
    return project_id


@router.get("")
async def get_projects(
    id: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    parentId: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
):
    if action == "generate-variation-code":
        return {"success": True, **service.generate_variation_code(parentId)}
    if id:
        return {"success": True, "data": service.get_project(id, current_user)}
    return {"success": True, "data": service.list_projects(current_user, status)}


@router.post("")
async def create_project(
    request: ProjectCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
):
    """Convert a won proposal into a project: {action: create_from_proposal, proposalId}"""
    result = service.create_from_proposal(request, current_user)
    message = "Project already exists for this proposal" if result["alreadyExists"] else "Project created successfully"
    return {"success": True, "message": message, **result}


@router.put("")
async def update_project(
    request: ActionRequest,
    id: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
):
    project = service.apply_action(_require_id(id), request, current_user)
    return {"success": True, "data": project, "message": "Project updated successfully"}


@router.delete("")
async def delete_project(
    id: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
):
    service.delete_project(_require_id(id), current_user)
    return {"success": True, "message": "Project deleted successfully"}
