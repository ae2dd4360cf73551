"""Deliverable repository - Document store operations for design deliverables"""

from typing import Optional

DELIVERABLES = "deliverables"


class DeliverableRepository:
    @staticmethod
    def get(store, deliverable_id: str) -> Optional[dict]:
        return store.get(DELIVERABLES, deliverable_id)

    @staticmethod
    def list_deliverables(
        store,
        project_id: Optional[str] = None,
        review_status: Optional[str] = None,
        uploaded_by: Optional[str] = None,
    ) -> list[dict]:
        filters = []
        if project_id:
            filters.append(("projectId", "==", project_id))
        if review_status:
            filters.append(("reviewStatus", "==", review_status))
        if uploaded_by:
            filters.append(("uploadedByUid", "==", uploaded_by))
        return store.query(DELIVERABLES, filters, order_by="uploadedAt", descending=True)

    @staticmethod
    def create_many(store, docs: list[dict]) -> list[str]:
        return store.create_many(DELIVERABLES, docs)

    @staticmethod
    def update(store, deliverable_id: str, updates: dict) -> None:
        store.update(DELIVERABLES, deliverable_id, updates)

    @staticmethod
    def delete(store, deliverable_id: str) -> None:
        store.delete(DELIVERABLES, deliverable_id)
