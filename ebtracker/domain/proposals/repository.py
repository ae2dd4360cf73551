"""Proposal repository - Document store operations for proposals"""

from typing import Optional

PROPOSALS = "proposals"


class ProposalRepository:
    """Repository for proposal document operations"""

    @staticmethod
    def get(store, proposal_id: str) -> Optional[dict]:
        return store.get(PROPOSALS, proposal_id)

    @staticmethod
    def list_all(store) -> list[dict]:
        return store.query(PROPOSALS, order_by="createdAt", descending=True)

    @staticmethod
    def list_by_creator(store, uid: str) -> list[dict]:
        return store.query(PROPOSALS, [("createdByUid", "==", uid)], order_by="createdAt", descending=True)

    @staticmethod
    def get_many(store, proposal_ids: list[str]) -> list[dict]:
        return store.get_many(PROPOSALS, proposal_ids)

    @staticmethod
    def create(store, data: dict) -> str:
        return store.create(PROPOSALS, data)

    @staticmethod
    def update(store, proposal_id: str, updates: dict) -> None:
        store.update(PROPOSALS, proposal_id, updates)

    @staticmethod
    def delete(store, proposal_id: str) -> None:
        store.delete(PROPOSALS, proposal_id)

    @staticmethod
    def project_number_taken(txn, project_number: str, exclude_id: str) -> bool:
        """Transactional uniqueness check over pricing.projectNumber"""
        matches = txn.query(PROPOSALS, [("pricing.projectNumber", "==", project_number)])
        return any(m["id"] != exclude_id for m in matches)
