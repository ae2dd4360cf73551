"""Activity router - FastAPI endpoint for the activity feed"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...auth import CurrentUser, get_current_user
from ...database import get_store
from .service import ActivityService

router = APIRouter(prefix="/activities", tags=["Activities"])

__all__ = ["router"]


def get_activity_service(store=Depends(get_store)) -> ActivityService:
    return ActivityService(store)


@router.get("")
async def get_activities(
    limit: int = Query(20, ge=1, le=500),
    proposalId: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    return {"success": True, "data": service.list_activities(current_user, limit, proposalId)}
