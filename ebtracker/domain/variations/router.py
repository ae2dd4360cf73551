"""Variation router - FastAPI endpoints for project scope variations"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ...auth import CurrentUser, get_current_user
from ...database import get_store
from ...shared.transitions import ActionRequest
from .schemas import VariationCreate
from .service import VariationService

router = APIRouter(prefix="/variations", tags=["Variations"])

__all__ = ["router"]


def get_variation_service(store=Depends(get_store)) -> VariationService:
    return VariationService(store)


@router.get("")
async def get_variations(
    id: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    parentProjectId: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: VariationService = Depends(get_variation_service),
):
    if id:
        return {"success": True, "data": service.get_variation(id, current_user)}
    return {"success": True, "data": service.list_variations(current_user, status, parentProjectId)}


@router.post("")
async def create_variation(
    data: VariationCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: VariationService = Depends(get_variation_service),
):
    variation_id = service.create_variation(data, current_user)
    return {"success": True, "message": "Variation submitted for approval.", "variationId": variation_id}


@router.put("")
async def review_variation(
    request: ActionRequest,
    id: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: VariationService = Depends(get_variation_service),
):
    if not id:
        raise HTTPException(status_code=400, detail="Variation ID is required.")
    variation = service.apply_action(id, request, current_user)
    return {"success": True, "data": variation, "message": f"Variation {variation.get('status')} successfully."}
