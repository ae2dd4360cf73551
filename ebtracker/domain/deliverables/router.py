"""Deliverable router - FastAPI endpoints for designer uploads"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from starlette.datastructures import UploadFile

from ...auth import CurrentUser, get_current_user
from ...database import get_store
from ...shared.transitions import ActionRequest
from ...shared.validators import parse_payload
from .schemas import LinkDeliverableCreate
from .service import DeliverableService, IncomingFile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/deliverables", tags=["Deliverables"])

__all__ = ["router"]


def get_deliverable_service(store=Depends(get_store)) -> DeliverableService:
    return DeliverableService(store)


@router.get("")
async def get_deliverables(
    projectId: Optional[str] = Query(None),
    reviewStatus: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: DeliverableService = Depends(get_deliverable_service),
):
    return {"success": True, "data": service.list_deliverables(current_user, projectId, reviewStatus)}


@router.post("", status_code=201)
async def upload_deliverables(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    service: DeliverableService = Depends(get_deliverable_service),
):
    """
    JSON body {projectId, links: [...]} records link deliverables.
    multipart/form-data with `files` parts and a `projectId` field uploads files.
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError as e:
            raise HTTPException(status_code=400, detail="Invalid JSON body") from e
        data = parse_payload(LinkDeliverableCreate, body)
        saved = service.add_links(data, current_user)
        return {"success": True, "data": saved, "message": f"{len(saved)} link(s) uploaded successfully"}

    if not content_type.startswith("multipart/form-data"):
        raise HTTPException(status_code=400, detail="Expected application/json or multipart/form-data")

    form = await request.form()
    files = []
    for part in form.getlist("files"):
        if isinstance(part, UploadFile) and part.filename:
            files.append(IncomingFile(part.filename, await part.read(), part.content_type))
    logger.info(f"📥 Deliverable upload: {len(files)} file(s) from {current_user.uid}")

    saved = service.upload_files(
        form.get("projectId") or "",
        files,
        current_user,
        description=form.get("description") or form.get("uploadNotes") or "",
        task_id=form.get("taskId") or None,
        version_number=form.get("versionNumber") or "1.0",
    )
    return {"success": True, "data": saved, "message": f"{len(saved)} file(s) uploaded successfully"}


@router.put("")
async def review_deliverable(
    request: ActionRequest,
    id: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: DeliverableService = Depends(get_deliverable_service),
):
    if not id:
        raise HTTPException(status_code=400, detail="Deliverable ID is required")
    deliverable = service.apply_action(id, request, current_user)
    return {"success": True, "data": deliverable, "message": "Deliverable updated successfully"}


@router.delete("")
async def delete_deliverable(
    id: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: DeliverableService = Depends(get_deliverable_service),
):
    if not id:
        raise HTTPException(status_code=400, detail="Deliverable ID is required")
    service.delete_deliverable(id, current_user)
    return {"success": True, "message": "Deliverable deleted successfully"}
