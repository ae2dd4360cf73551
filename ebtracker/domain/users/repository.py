"""User repository - Document store operations for user profiles"""

from typing import Optional

USERS = "users"


class UserRepository:
    """Repository for users/{uid} documents"""

    @staticmethod
    def get(store, uid: str) -> Optional[dict]:
        return store.get(USERS, uid)

    @staticmethod
    def get_many(store, uids: list[str]) -> list[dict]:
        return store.get_many(USERS, uids)

    @staticmethod
    def list_users(store, role: Optional[str] = None, include_inactive: bool = False) -> list[dict]:
        filters = []
        if role:
            filters.append(("role", "==", role))
        if not include_inactive:
            filters.append(("status", "==", "active"))
        return store.query(USERS, filters)

    @staticmethod
    def create(store, uid: str, data: dict) -> str:
        return store.create(USERS, data, doc_id=uid)

    @staticmethod
    def update(store, uid: str, updates: dict) -> None:
        store.update(USERS, uid, updates)
