"""File router - FastAPI endpoints for proposal attachments"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile

from ...auth import CurrentUser, get_current_user
from ...config import MAX_UPLOAD_FILE_SIZE
from ...database import get_store
from .schemas import LinkUpload
from .service import FileService

router = APIRouter(prefix="/files", tags=["Files"])

__all__ = ["router"]


def get_file_service(store=Depends(get_store)) -> FileService:
    return FileService(store)


@router.get("")
async def get_files(
    fileId: Optional[str] = Query(None),
    proposalId: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: FileService = Depends(get_file_service),
):
    if fileId:
        return {"success": True, "data": service.get_file(fileId, current_user)}
    return {"success": True, "data": service.list_files(current_user, proposalId)}


@router.post("/upload-file", status_code=201)
async def upload_file(
    file: UploadFile = File(...),
    proposalId: Optional[str] = Form(None),
    fileType: str = Form("project"),
    current_user: CurrentUser = Depends(get_current_user),
    service: FileService = Depends(get_file_service),
):
    if not file or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    contents = await file.read()
    if len(contents) == 0:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(contents) > MAX_UPLOAD_FILE_SIZE:
        raise HTTPException(status_code=400, detail=f"File too large (max {MAX_UPLOAD_FILE_SIZE // (1024 * 1024)}MB)")

    saved = service.upload_file(
        current_user, file.filename, contents, file.content_type, proposal_id=proposalId or None, file_type=fileType
    )
    return {"success": True, "data": saved}


@router.post("", status_code=201)
async def add_links(
    data: LinkUpload,
    current_user: CurrentUser = Depends(get_current_user),
    service: FileService = Depends(get_file_service),
):
    return {"success": True, "data": service.add_links(data, current_user)}


@router.delete("")
async def delete_file(
    id: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: FileService = Depends(get_file_service),
):
    if not id:
        raise HTTPException(status_code=400, detail="File ID is required")
    service.delete_file(id, current_user)
    return {"success": True, "message": "File deleted successfully"}
