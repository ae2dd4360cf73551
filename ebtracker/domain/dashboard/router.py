"""Dashboard router - FastAPI endpoint for dashboard counts"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...auth import CurrentUser, get_current_user
from ...database import get_store
from ...shared.validators import utcnow
from .service import DashboardService

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

__all__ = ["router"]


def get_dashboard_service(store=Depends(get_store)) -> DashboardService:
    return DashboardService(store)


@router.get("")
async def get_dashboard(
    role: Optional[str] = Query(None),
    stats: bool = Query(False),
    current_user: CurrentUser = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    response = {"success": True, "data": service.get_dashboard(current_user, role, stats), "timestamp": utcnow()}
    if role and not stats:
        response["role"] = role
    return response
