"""
Notification fan-out
One document per recipient role or recipient uid. Role member fan-out queries
the active users holding the role at event time.
"""

import logging
from typing import Iterable, Optional

from ..database import BATCH_SIZE
from ..shared.validators import utcnow
from .outbox_service import record_failed_write

logger = logging.getLogger(__name__)

NOTIFICATIONS = "notifications"


def build_notification(
    notification_type: str,
    message: str,
    recipient_role: str,
    recipient_uid: Optional[str] = None,
    priority: str = "normal",
    **context,
) -> dict:
    notification = {
        "type": notification_type,
        "recipientRole": recipient_role,
        "recipientUid": recipient_uid,
        "message": message,
        "priority": priority,
        "isRead": False,
        "createdAt": utcnow(),
    }
    notification.update({k: v for k, v in context.items() if v is not None})
    return notification


def send_notifications(store, notifications: list[dict]) -> int:
    """
    Write notifications in batches. Returns how many were written.

    Each batch commits on its own, so only the documents of a failed batch are
    recorded in the outbox.
    """
    written = 0
    for start in range(0, len(notifications), BATCH_SIZE):
        batch = notifications[start : start + BATCH_SIZE]
        try:
            store.create_many(NOTIFICATIONS, batch)
            written += len(batch)
        except Exception as e:
            logger.error(f"❌ Notification batch failed ({len(batch)} docs): {e}")
            for notification in batch:
                record_failed_write(store, "notification", notification, e)
    if written:
        logger.info(f"🔔 Sent {written} notification(s)")
    return written


def notify_role(store, role: str, notification_type: str, message: str, priority: str = "normal", **context) -> int:
    """Role-addressed notification, visible to every member of the role"""
    return send_notifications(store, [build_notification(notification_type, message, role, None, priority, **context)])


def notify_user(
    store,
    uid: Optional[str],
    role: str,
    notification_type: str,
    message: str,
    priority: str = "normal",
    **context,
) -> int:
    if not uid:
        return 0
    return send_notifications(store, [build_notification(notification_type, message, role, uid, priority, **context)])


def notify_role_members(
    store,
    roles: Iterable[str],
    notification_type: str,
    message: str,
    priority: str = "normal",
    exclude_uids: Iterable[str] = (),
    **context,
) -> int:
    """One uid-addressed notification per active user holding any of `roles`"""
    roles = list(roles)
    excluded = set(exclude_uids)
    try:
        members = store.query("users", [("role", "in", roles), ("status", "==", "active")])
    except Exception as e:
        logger.error(f"❌ Could not resolve members of {roles}: {e}")
        return 0

    notifications = [
        build_notification(notification_type, message, m.get("role"), m["id"], priority, **context)
        for m in members
        if m["id"] not in excluded
    ]
    return send_notifications(store, notifications)
