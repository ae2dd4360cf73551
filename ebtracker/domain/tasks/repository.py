"""Task repository - Document store operations for design tasks"""

from typing import Optional

TASKS = "tasks"


class TaskRepository:
    @staticmethod
    def get(store, task_id: str) -> Optional[dict]:
        return store.get(TASKS, task_id)

    @staticmethod
    def list_tasks(
        store,
        project_id: Optional[str] = None,
        designer_uid: Optional[str] = None,
        status: Optional[str] = None,
    ) -> list[dict]:
        filters = []
        if project_id:
            filters.append(("projectId", "==", project_id))
        if designer_uid:
            filters.append(("designerUid", "==", designer_uid))
        if status:
            filters.append(("status", "==", status))
        return store.query(TASKS, filters, order_by="createdAt", descending=True)

    @staticmethod
    def create(store, data: dict) -> str:
        return store.create(TASKS, data)

    @staticmethod
    def update(store, task_id: str, updates: dict) -> None:
        store.update(TASKS, task_id, updates)
