"""File repository - Document store operations for proposal attachments"""

from typing import Optional

FILES = "files"


class FileRepository:
    @staticmethod
    def get(store, file_id: str) -> Optional[dict]:
        return store.get(FILES, file_id)

    @staticmethod
    def list_for_proposal(store, proposal_id: str) -> list[dict]:
        return store.query(FILES, [("proposalId", "==", proposal_id)], order_by="uploadedAt", descending=True)

    @staticmethod
    def list_for_proposals(store, proposal_ids: list[str]) -> list[dict]:
        files = []
        for i in range(0, len(proposal_ids), 10):
            files.extend(store.query(FILES, [("proposalId", "in", proposal_ids[i : i + 10])]))
        return files

    @staticmethod
    def list_all(store) -> list[dict]:
        return store.query(FILES, order_by="uploadedAt", descending=True)

    @staticmethod
    def create(store, data: dict) -> str:
        return store.create(FILES, data)

    @staticmethod
    def delete(store, file_id: str) -> None:
        store.delete(FILES, file_id)

    @staticmethod
    def delete_many(store, file_ids: list[str]) -> int:
        return store.delete_many(FILES, file_ids)
