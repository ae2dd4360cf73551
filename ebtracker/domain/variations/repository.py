"""Variation repository - Document store operations for variations"""

from typing import Optional

VARIATIONS = "variations"


class VariationRepository:
    @staticmethod
    def get(store, variation_id: str) -> Optional[dict]:
        return store.get(VARIATIONS, variation_id)

    @staticmethod
    def list_for_parent(store, parent_id: str) -> list[dict]:
        return store.query(VARIATIONS, [("parentProjectId", "==", parent_id)])

    @staticmethod
    def list_variations(
        store,
        status: Optional[str] = None,
        created_by: Optional[str] = None,
        parent_id: Optional[str] = None,
    ) -> list[dict]:
        filters = []
        if status:
            filters.append(("status", "==", status))
        if created_by:
            filters.append(("createdByUid", "==", created_by))
        if parent_id:
            filters.append(("parentProjectId", "==", parent_id))
        return store.query(VARIATIONS, filters, order_by="createdAt", descending=True)

    @staticmethod
    def code_exists(store, parent_id: str, code: str) -> bool:
        return bool(store.query(VARIATIONS, [("parentProjectId", "==", parent_id), ("variationCode", "==", code)], limit=1))

    @staticmethod
    def create(store, data: dict) -> str:
        return store.create(VARIATIONS, data)
