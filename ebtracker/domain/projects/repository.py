"""Project repository - Document store operations for projects"""

from typing import Optional

from .states import ensure_legal_project_state

PROJECTS = "projects"


class ProjectRepository:
    """Repository for project document operations"""

    @staticmethod
    def get(store, project_id: str) -> Optional[dict]:
        return store.get(PROJECTS, project_id)

    @staticmethod
    def list_all(store, status: Optional[str] = None) -> list[dict]:
        filters = [("status", "==", status)] if status else []
        return store.query(PROJECTS, filters, order_by="createdAt", descending=True)

    @staticmethod
    def list_for_design_lead(store, uid: str, status: Optional[str] = None) -> list[dict]:
        filters = [("designLeadUid", "==", uid)]
        if status:
            filters.append(("status", "==", status))
        return store.query(PROJECTS, filters, order_by="createdAt", descending=True)

    @staticmethod
    def list_for_designer(store, uid: str, status: Optional[str] = None) -> list[dict]:
        filters = [("assignedDesigners", "array_contains", uid)]
        if status:
            filters.append(("status", "==", status))
        return store.query(PROJECTS, filters, order_by="createdAt", descending=True)

    @staticmethod
    def list_for_bdm(store, uid: str, status: Optional[str] = None) -> list[dict]:
        filters = [("bdmUid", "==", uid)]
        if status:
            filters.append(("status", "==", status))
        return store.query(PROJECTS, filters, order_by="createdAt", descending=True)

    @staticmethod
    def get_many(store, project_ids: list[str]) -> list[dict]:
        return store.get_many(PROJECTS, project_ids)

    @staticmethod
    def create(store, data: dict) -> str:
        ensure_legal_project_state({}, data)
        return store.create(PROJECTS, data)

    @staticmethod
    def update(store, project: dict, updates: dict) -> None:
        """Every project write goes through the state check"""
        ensure_legal_project_state(project, updates)
        store.update(PROJECTS, project["id"], updates)

    @staticmethod
    def update_in_transaction(txn, project: dict, updates: dict) -> None:
        ensure_legal_project_state(project, updates)
        txn.update(PROJECTS, project["id"], updates)

    @staticmethod
    def delete(store, project_id: str) -> None:
        store.delete(PROJECTS, project_id)
