"""Payment router - FastAPI endpoints for payment records"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ...auth import CurrentUser, get_current_user
from ...database import get_store
from ...shared.transitions import ActionRequest
from .schemas import PaymentCreate
from .service import PaymentService

router = APIRouter(prefix="/payments", tags=["Payments"])

__all__ = ["router"]


def get_payment_service(store=Depends(get_store)) -> PaymentService:
    return PaymentService(store)


@router.get("")
async def get_payments(
    projectId: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    overdue: bool = Query(False),
    current_user: CurrentUser = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    return {"success": True, "data": service.list_payments(current_user, projectId, status, overdue)}


@router.post("", status_code=201)
async def create_payment(
    data: PaymentCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    payment = service.create_payment(data, current_user)
    return {"success": True, "data": payment, "message": "Payment record created successfully"}


@router.post("/check-overdue")
async def check_overdue_payments(
    current_user: CurrentUser = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """Run the overdue sweep on demand"""
    count = service.check_overdue(current_user)
    return {"success": True, "data": {"count": count}, "message": f"{count} payment(s) marked as delayed"}


@router.put("")
async def update_payment(
    request: ActionRequest,
    id: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    if not id:
        raise HTTPException(status_code=400, detail="Payment ID and action required")
    payment = service.apply_action(id, request, current_user)
    return {"success": True, "data": payment, "message": "Payment record updated successfully"}
