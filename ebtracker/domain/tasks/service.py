"""Task service - Drawing tasks assigned by design leads to designers"""

import logging
from typing import Optional

from fastapi import HTTPException

from ...auth import CurrentUser, check_project_access, ensure_role
from ...services.activity_service import log_activity
from ...services.notification_service import notify_user
from ...shared.roles import DESIGN_LEAD, DESIGN_MANAGEMENT_ROLES, DESIGNER
from ...shared.transitions import ActionRequest, Outcome, Transition, authorize_transition, parse_action
from ...shared.validators import utcnow
from ..projects.repository import ProjectRepository
from .repository import TaskRepository
from .schemas import CommentData, TaskAction, TaskCreate, TaskStatus, UpdateStatusData

logger = logging.getLogger(__name__)

TASK_TRANSITIONS: dict[TaskAction, Transition] = {
    # The assigned designer or design management; checked against the task below
    TaskAction.UPDATE_STATUS: Transition((DESIGNER, *DESIGN_MANAGEMENT_ROLES), UpdateStatusData),
    TaskAction.APPROVE: Transition(DESIGN_MANAGEMENT_ROLES),
    TaskAction.REQUEST_REVISION: Transition(DESIGN_MANAGEMENT_ROLES, CommentData),
    TaskAction.ADD_COMMENT: Transition(None, CommentData),
}


class TaskService:
    def __init__(self, store):
        self.store = store
        self.repo = TaskRepository()

    def list_tasks(
        self,
        user: CurrentUser,
        project_id: Optional[str] = None,
        designer_uid: Optional[str] = None,
        status: Optional[str] = None,
    ) -> list[dict]:
        # Designers only see their own tasks
        if user.role == DESIGNER:
            designer_uid = user.uid
        return self.repo.list_tasks(self.store, project_id, designer_uid, status)

    def create_task(self, data: TaskCreate, user: CurrentUser) -> dict:
        ensure_role(user, DESIGN_MANAGEMENT_ROLES)
        project = ProjectRepository.get(self.store, data.projectId)
        if not project:
            raise HTTPException(status_code=404, detail="Project not found")

        now = utcnow()
        task = {
            "projectId": data.projectId,
            "projectCode": project.get("projectCode"),
            "projectName": project.get("projectName"),
            "drawingType": data.drawingType,
            "drawingNumber": data.drawingNumber,
            "taskDescription": data.taskDescription,
            "designerUid": data.designerUid or "",
            "designerName": data.designerName or "",
            "assignedByName": user.name,
            "assignedByUid": user.uid,
            "priority": data.priority,
            "startDate": data.startDate or now,
            "dueDate": data.dueDate,
            "status": TaskStatus.NOT_STARTED.value,
            "submittedDate": None,
            "approvedDate": None,
            "fileUrl": "",
            "comments": [],
            "revisionCount": 0,
            "createdAt": now,
            "updatedAt": now,
        }
        task_id = self.repo.create(self.store, task)
        logger.info(f"✅ Task {task_id} assigned to {data.designerName or data.designerUid}")

        log_activity(
            self.store,
            "task_assigned",
            f"Task assigned to {data.designerName or 'designer'} for {project.get('projectName')}",
            user,
            projectId=data.projectId,
            taskId=task_id,
        )
        notify_user(
            self.store,
            data.designerUid,
            DESIGNER,
            "task_assigned",
            f"New design task assigned for {project.get('projectName')}",
            projectId=data.projectId,
            taskId=task_id,
        )
        return {"id": task_id, **task}

    def apply_action(self, task_id: str, request: ActionRequest, user: CurrentUser) -> dict:
        action = parse_action(TaskAction, request.action)
        task = self.repo.get(self.store, task_id)
        if not task:
            raise HTTPException(status_code=404, detail="Task not found")
        payload = authorize_transition(TASK_TRANSITIONS, action, user, request.data)

        outcome = getattr(self, f"_{action.value}")(task, payload, user)
        self.repo.update(self.store, task_id, {**outcome.updates, "updatedAt": utcnow()})
        logger.info(f"✅ Task {task_id}: {action.value} by {user.uid}")

        log_activity(self.store, f"task_{action.value}", outcome.detail, user, projectId=task.get("projectId"), taskId=task_id)
        for effect in outcome.effects:
            effect()
        return self.repo.get(self.store, task_id)

    def _notify(self, uid: Optional[str], role: str, action: TaskAction, task: dict, message: str):
        return lambda: notify_user(
            self.store,
            uid,
            role,
            f"task_{action.value}",
            message,
            projectId=task.get("projectId"),
            taskId=task.get("id"),
        )

    def _comment(self, task: dict, text: str, user: CurrentUser) -> list:
        return list(task.get("comments") or []) + [
            {"text": text, "authorName": user.name, "authorUid": user.uid, "createdAt": utcnow()}
        ]

    def _update_status(self, task: dict, payload: UpdateStatusData, user: CurrentUser) -> Outcome:
        if user.role == DESIGNER and task.get("designerUid") != user.uid:
            raise HTTPException(status_code=403, detail="You can only update your own tasks")

        updates = {"status": payload.status.value}
        effects = []
        if payload.status == TaskStatus.SUBMITTED:
            updates["submittedDate"] = utcnow()
            updates["fileUrl"] = payload.fileUrl
            effects.append(
                self._notify(
                    task.get("assignedByUid"),
                    DESIGN_LEAD,
                    TaskAction.UPDATE_STATUS,
                    task,
                    f"Drawing submitted by {task.get('designerName')} for review",
                )
            )
        return Outcome(updates, f"Task status updated to {payload.status.value}", effects)

    def _approve(self, task: dict, payload, user: CurrentUser) -> Outcome:
        notify = self._notify(
            task.get("designerUid"),
            DESIGNER,
            TaskAction.APPROVE,
            task,
            f"Your task for {task.get('drawingType') or task.get('projectName')} has been approved",
        )
        return Outcome(
            {"status": TaskStatus.APPROVED.value, "approvedDate": utcnow(), "approvedBy": user.name},
            "Task approved",
            [notify],
        )

    def _request_revision(self, task: dict, payload: CommentData, user: CurrentUser) -> Outcome:
        notify = self._notify(
            task.get("designerUid"),
            DESIGNER,
            TaskAction.REQUEST_REVISION,
            task,
            f"Revision required for {task.get('drawingType') or task.get('projectName')}: {payload.comment}",
        )
        return Outcome(
            {
                "status": TaskStatus.REVISION_REQUIRED.value,
                "revisionCount": (task.get("revisionCount") or 0) + 1,
                "comments": self._comment(task, payload.comment, user),
            },
            "Revision requested",
            [notify],
        )

    def _add_comment(self, task: dict, payload: CommentData, user: CurrentUser) -> Outcome:
        if user.role == DESIGNER:
            if task.get("designerUid") != user.uid:
                raise HTTPException(status_code=403, detail="You can only comment on your own tasks")
        else:
            project = ProjectRepository.get(self.store, task.get("projectId"))
            if project:
                check_project_access(user, project)
        return Outcome({"comments": self._comment(task, payload.comment, user)}, "Comment added")
