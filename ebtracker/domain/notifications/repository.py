"""Notification repository - Document store operations for notifications"""

from typing import Optional

from ...services.notification_service import NOTIFICATIONS


class NotificationRepository:
    @staticmethod
    def get(store, notification_id: str) -> Optional[dict]:
        return store.get(NOTIFICATIONS, notification_id)

    @staticmethod
    def list_for_uid(store, uid: str, unread_only: bool = False) -> list[dict]:
        filters = [("recipientUid", "==", uid)]
        if unread_only:
            filters.append(("isRead", "==", False))
        return store.query(NOTIFICATIONS, filters)

    @staticmethod
    def list_for_role(store, role: str, unread_only: bool = False) -> list[dict]:
        filters = [("recipientRole", "==", role)]
        if unread_only:
            filters.append(("isRead", "==", False))
        return store.query(NOTIFICATIONS, filters)

    @staticmethod
    def create(store, data: dict) -> str:
        return store.create(NOTIFICATIONS, data)

    @staticmethod
    def update(store, notification_id: str, updates: dict) -> None:
        store.update(NOTIFICATIONS, notification_id, updates)

    @staticmethod
    def update_many(store, notification_ids: list[str], updates: dict) -> int:
        return store.update_many(NOTIFICATIONS, notification_ids, updates)

    @staticmethod
    def delete_many(store, notification_ids: list[str]) -> int:
        return store.delete_many(NOTIFICATIONS, notification_ids)
