"""Timesheet router - FastAPI endpoints for hour logging"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ...auth import CurrentUser, get_current_user
from ...database import get_store
from .schemas import TimesheetCreate
from .service import TimesheetService

router = APIRouter(prefix="/timesheets", tags=["Timesheets"])

__all__ = ["router"]


def get_timesheet_service(store=Depends(get_store)) -> TimesheetService:
    """Dependency injection for TimesheetService"""
    return TimesheetService(store)


@router.get("")
async def get_timesheets(
    action: Optional[str] = Query(None),
    projectId: Optional[str] = Query(None),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: TimesheetService = Depends(get_timesheet_service),
):
    """
    ?action=executive_dashboard  budget usage for COO / Director
    ?projectId=...               one project's entries
    otherwise                    the caller's own entries
    """
    if action == "executive_dashboard":
        return {"success": True, "data": service.executive_dashboard(current_user)}
    if projectId:
        return {"success": True, "data": service.list_for_project(projectId)}
    return {"success": True, "data": service.list_own(current_user, startDate, endDate)}


@router.post("")
async def add_timesheet(
    data: TimesheetCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: TimesheetService = Depends(get_timesheet_service),
):
    result = service.add_timesheet(data, current_user)
    # Over-allocation is reported with 200 so the client can offer a time request
    status_code = 201 if result["success"] else 200
    return JSONResponse(status_code=status_code, content=jsonable_encoder(result))


@router.delete("")
async def delete_timesheet(
    id: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: TimesheetService = Depends(get_timesheet_service),
):
    if not id:
        raise HTTPException(status_code=400, detail="Missing timesheet ID.")
    service.delete_timesheet(id, current_user)
    return {"success": True, "message": "Timesheet entry deleted."}
