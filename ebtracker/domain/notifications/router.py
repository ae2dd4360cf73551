"""Notification router - FastAPI endpoints for the notification inbox"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ...auth import CurrentUser, get_current_user
from ...database import get_store
from .schemas import NotificationCreate, NotificationUpdate
from .service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])

__all__ = ["router"]


def get_notification_service(store=Depends(get_store)) -> NotificationService:
    return NotificationService(store)


@router.get("")
async def get_notifications(
    limit: int = Query(20, ge=1, le=200),
    unreadOnly: bool = Query(False),
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    notifications = service.list_notifications(current_user, limit, unreadOnly)
    return {"success": True, "data": notifications, "count": len(notifications)}


@router.post("", status_code=201)
async def create_notification(
    data: NotificationCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    service.create_notification(data, current_user)
    return {"success": True, "message": "Notification created"}


@router.put("")
async def update_notifications(
    data: NotificationUpdate,
    id: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """?id= marks one notification; {markAllRead: true} marks the whole inbox"""
    if id:
        service.update_notification(id, data, current_user)
        return {"success": True, "message": "Notification updated"}
    if data.markAllRead:
        count = service.mark_all_read(current_user)
        return {"success": True, "data": {"count": count}, "message": f"{count} notification(s) marked as read"}
    raise HTTPException(status_code=400, detail="Notification ID or markAllRead is required")


@router.delete("")
async def clear_notifications(
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    count = service.clear_all(current_user)
    return {"success": True, "data": {"count": count}, "message": f"{count} notification(s) cleared"}
