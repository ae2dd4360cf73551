"""Invoice router - FastAPI endpoints for invoices and payment reminders"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ...auth import CurrentUser, get_current_user
from ...database import get_store
from .schemas import InvoiceCreate, InvoiceUpdate
from .service import InvoiceService

router = APIRouter(prefix="/invoices", tags=["Invoices"])

__all__ = ["router"]


def get_invoice_service(store=Depends(get_store)) -> InvoiceService:
    return InvoiceService(store)


def _require_id(invoice_id: Optional[str]) -> str:
    if not invoice_id:
        raise HTTPException(status_code=400, detail="Invoice ID is required")
    return invoice_id


@router.get("")
async def get_invoices(
    status: Optional[str] = Query(None),
    projectId: Optional[str] = Query(None),
    overdue: bool = Query(False),
    current_user: CurrentUser = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return {"success": True, "data": service.list_invoices(current_user, status, projectId, overdue)}


@router.post("/send-reminders")
async def send_reminders(
    current_user: CurrentUser = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    reminders = service.send_reminders(current_user)
    return {"success": True, "message": f"{len(reminders)} payment reminders sent", "reminders": reminders}


@router.get("/{invoice_id}")
async def get_invoice(
    invoice_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    return {"success": True, "data": service.get_invoice(invoice_id, current_user)}


@router.post("", status_code=201)
async def create_invoice(
    data: InvoiceCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    invoice = service.create_invoice(data, current_user)
    return {"success": True, "data": invoice, "message": "Invoice created successfully and notifications sent"}


@router.put("")
async def update_invoice(
    data: InvoiceUpdate,
    id: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    invoice = service.update_invoice(_require_id(id), data, current_user)
    message = "Invoice updated and reminder sent" if data.sendReminder else "Invoice updated successfully"
    return {"success": True, "data": invoice, "message": message}


@router.delete("")
async def delete_invoice(
    id: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: InvoiceService = Depends(get_invoice_service),
):
    service.delete_invoice(_require_id(id), current_user)
    return {"success": True, "message": "Invoice deleted successfully"}
