"""Time request repository - Document store operations for additional-hour requests"""

from typing import Optional

TIME_REQUESTS = "timeRequests"


class TimeRequestRepository:
    @staticmethod
    def get(store, request_id: str) -> Optional[dict]:
        return store.get(TIME_REQUESTS, request_id)

    @staticmethod
    def list_requests(store, filters: list, limit: int = 50) -> list[dict]:
        return store.query(TIME_REQUESTS, filters, order_by="createdAt", descending=True, limit=limit)

    @staticmethod
    def create(store, data: dict) -> str:
        return store.create(TIME_REQUESTS, data)

    @staticmethod
    def delete(store, request_id: str) -> None:
        store.delete(TIME_REQUESTS, request_id)
