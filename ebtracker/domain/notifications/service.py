"""
Notification service - The caller's inbox

A caller sees documents addressed to their uid plus documents addressed to
their role with no uid. Role documents carrying someone else's uid belong to
that person only.
"""

import logging

from fastapi import HTTPException

from ...auth import CurrentUser, ensure_role
from ...services.notification_service import build_notification, send_notifications
from ...shared.roles import DESIGN_MANAGEMENT_ROLES
from ...shared.validators import timestamp_key, utcnow
from .repository import NotificationRepository
from .schemas import NotificationCreate, NotificationUpdate

logger = logging.getLogger(__name__)


def is_recipient(notification: dict, user: CurrentUser) -> bool:
    if notification.get("recipientUid"):
        return notification["recipientUid"] == user.uid
    return notification.get("recipientRole") == user.role


class NotificationService:
    def __init__(self, store):
        self.store = store
        self.repo = NotificationRepository()

    def _inbox(self, user: CurrentUser, unread_only: bool = False) -> list[dict]:
        merged = {}
        for n in self.repo.list_for_role(self.store, user.role, unread_only):
            if not n.get("recipientUid") or n.get("recipientUid") == user.uid:
                merged[n["id"]] = n
        # uid-addressed documents win over the role copy of the same id
        for n in self.repo.list_for_uid(self.store, user.uid, unread_only):
            merged[n["id"]] = n
        return sorted(merged.values(), key=timestamp_key(), reverse=True)

    def list_notifications(self, user: CurrentUser, limit: int = 20, unread_only: bool = False) -> list[dict]:
        notifications = self._inbox(user, unread_only)
        if unread_only:
            notifications = [n for n in notifications if not n.get("isRead")]
        return notifications[:limit]

    def create_notification(self, data: NotificationCreate, user: CurrentUser) -> int:
        ensure_role(user, DESIGN_MANAGEMENT_ROLES)
        extra = data.model_dump(exclude={"type", "message", "recipientRole", "recipientUid", "priority"})
        notification = build_notification(
            data.type,
            data.message,
            data.recipientRole,
            data.recipientUid,
            data.priority,
            createdByUid=user.uid,
            createdByName=user.name,
            **extra,
        )
        return send_notifications(self.store, [notification])

    def update_notification(self, notification_id: str, data: NotificationUpdate, user: CurrentUser) -> None:
        if data.isRead is None:
            raise HTTPException(status_code=400, detail="isRead is required")
        notification = self.repo.get(self.store, notification_id)
        if not notification:
            raise HTTPException(status_code=404, detail="Notification not found")
        if not is_recipient(notification, user):
            raise HTTPException(status_code=403, detail="You can only update your own notifications")

        self.repo.update(
            self.store,
            notification_id,
            {"isRead": data.isRead, "readAt": utcnow() if data.isRead else None},
        )

    def mark_all_read(self, user: CurrentUser) -> int:
        unread = [n["id"] for n in self._inbox(user, unread_only=True) if not n.get("isRead")]
        count = self.repo.update_many(self.store, unread, {"isRead": True, "readAt": utcnow()})
        logger.info(f"🔔 Marked {count} notification(s) read for {user.uid}")
        return count

    def clear_all(self, user: CurrentUser) -> int:
        ids = [n["id"] for n in self._inbox(user)]
        count = self.repo.delete_many(self.store, ids)
        logger.info(f"🔔 Cleared {count} notification(s) for {user.uid}")
        return count
