"""Executive summary router - FastAPI endpoint for budget health reporting"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...auth import CurrentUser, get_current_user
from ...database import get_store
from .service import ExecutiveSummaryService

router = APIRouter(prefix="/executive-summary", tags=["Executive Summary"])

__all__ = ["router"]


def get_executive_summary_service(store=Depends(get_store)) -> ExecutiveSummaryService:
    return ExecutiveSummaryService(store)


@router.get("")
async def get_executive_summary(
    fromDate: Optional[str] = Query(None),
    toDate: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: ExecutiveSummaryService = Depends(get_executive_summary_service),
):
    return {"success": True, "data": service.summary(current_user, fromDate, toDate)}
