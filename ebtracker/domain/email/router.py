"""Email router - Manual email triggers and the side-effect outbox"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, field_validator

from ...auth import CurrentUser, get_current_user, require_roles
from ...config import EMAIL_FROM_ADDRESS, RESEND_API_KEY
from ...database import get_store
from ...services.outbox_service import dispatch_email, list_entries, retry_failed
from ...shared.roles import COO, DIRECTOR

router = APIRouter(prefix="/email", tags=["Email"])

__all__ = ["router"]


class EmailTriggerRequest(BaseModel):
    event: str
    data: dict = Field(default_factory=dict)

    @field_validator("event")
    @classmethod
    def validate_event(cls, v):
        if not v or not v.strip():
            raise ValueError("Event is required")
        return v.strip()


@router.get("/health")
async def email_health():
    return {
        "status": "ok",
        "service": "email",
        "from": EMAIL_FROM_ADDRESS,
        "hasApiKey": bool(RESEND_API_KEY),
    }


@router.post("/trigger")
async def trigger_email(
    request: EmailTriggerRequest,
    current_user: CurrentUser = Depends(get_current_user),
    store=Depends(get_store),
):
    result = dispatch_email(store, request.event, {**request.data, "triggeredBy": current_user.name})
    if result.get("success"):
        return {"success": True, "data": result, "message": f"Email sent for {request.event}"}
    return {"success": False, "data": result, "error": result.get("error") or result.get("message")}


@router.get("/outbox")
async def get_outbox(
    status: Optional[str] = Query(None),
    kind: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    current_user: CurrentUser = Depends(require_roles(COO, DIRECTOR)),
    store=Depends(get_store),
):
    entries = list_entries(store, status, kind, limit)
    return {"success": True, "data": entries, "count": len(entries)}


@router.post("/outbox/retry")
async def retry_outbox(
    limit: int = Query(50, ge=1, le=500),
    current_user: CurrentUser = Depends(require_roles(COO, DIRECTOR)),
    store=Depends(get_store),
):
    summary = retry_failed(store, limit)
    return {"success": True, "data": summary, "message": f"{summary['succeeded']} of {summary['retried']} retried"}
