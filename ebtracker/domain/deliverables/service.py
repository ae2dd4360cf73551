"""
Deliverable service - Designer uploads (files and links) and their review

Multi-file uploads go to R2 one at a time. If any upload fails, the blobs
already written by that request are deleted before the error is returned,
and no deliverable documents are created.
"""

import logging
import os
from typing import NamedTuple, Optional

from fastapi import HTTPException

from ...auth import CurrentUser, ensure_role
from ...config import MAX_UPLOAD_FILE_SIZE, MAX_UPLOAD_FILES
from ...services.activity_service import log_activity
from ...services.notification_service import notify_role, notify_user
from ...shared.roles import COO, DESIGN_LEAD, DESIGN_MANAGEMENT_ROLES, DESIGNER
from ...shared.transitions import ActionRequest, Transition, authorize_transition, parse_action
from ...shared.validators import utcnow
from ...storage import build_key, delete_blob, generate_presigned_url, upload_blob
from ..projects.repository import ProjectRepository
from ..projects.states import DesignStatus, is_legal_state
from .repository import DeliverableRepository
from .schemas import ALLOWED_EXTENSIONS, DeliverableAction, LinkDeliverableCreate, ReviewData, ReviewStatus

logger = logging.getLogger(__name__)

DELIVERABLE_TRANSITIONS: dict[DeliverableAction, Transition] = {
    DeliverableAction.REVIEW: Transition(DESIGN_MANAGEMENT_ROLES, ReviewData),
}


class IncomingFile(NamedTuple):
    filename: str
    contents: bytes
    content_type: Optional[str]


def validate_files(files: list[IncomingFile]) -> None:
    if not files:
        raise HTTPException(status_code=400, detail="No files provided")
    if len(files) > MAX_UPLOAD_FILES:
        raise HTTPException(status_code=400, detail=f"Too many files (max {MAX_UPLOAD_FILES})")
    for f in files:
        ext = os.path.splitext(f.filename or "")[1].lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid file type for {f.filename}. Allowed: PDF, JPG, PNG, TIFF, DWG, DXF, ZIP",
            )
        if len(f.contents) > MAX_UPLOAD_FILE_SIZE:
            raise HTTPException(
                status_code=400, detail=f"{f.filename} is too large (max {MAX_UPLOAD_FILE_SIZE // (1024 * 1024)}MB)"
            )


class DeliverableService:
    def __init__(self, store):
        self.store = store
        self.repo = DeliverableRepository()

    def _present(self, deliverable: dict) -> dict:
        if deliverable.get("deliverableType") == "file" and deliverable.get("storagePath"):
            return {**deliverable, "url": generate_presigned_url(deliverable["storagePath"])}
        return deliverable

    def list_deliverables(
        self, user: CurrentUser, project_id: Optional[str] = None, review_status: Optional[str] = None
    ) -> list[dict]:
        # Designers only see their own uploads
        uploaded_by = user.uid if user.role == DESIGNER else None
        deliverables = self.repo.list_deliverables(self.store, project_id, review_status, uploaded_by)
        return [self._present(d) for d in deliverables]

    def _get_project_for_upload(self, project_id: str, user: CurrentUser) -> dict:
        project = ProjectRepository.get(self.store, project_id)
        if not project:
            raise HTTPException(status_code=404, detail="Project not found")
        if user.role == DESIGNER and user.uid not in (project.get("assignedDesigners") or []):
            raise HTTPException(status_code=403, detail="You are not assigned to this project")
        return project

    def _base_document(self, project: dict, user: CurrentUser, description: str, task_id: Optional[str]) -> dict:
        now = utcnow()
        return {
            "projectId": project["id"],
            "projectCode": project.get("projectCode"),
            "projectName": project.get("projectName"),
            "taskId": task_id,
            "description": description,
            "uploadedByUid": user.uid,
            "uploadedByName": user.name,
            "uploadedByRole": user.role,
            "reviewStatus": ReviewStatus.PENDING.value,
            "reviewComments": "",
            "reviewedBy": None,
            "reviewedAt": None,
            "uploadedAt": now,
            "updatedAt": now,
        }

    def _after_upload(self, project: dict, saved: list[dict], user: CurrentUser, kind: str, description: str) -> list[dict]:
        ids = self.repo.create_many(self.store, saved)
        created = [{"id": doc_id, **doc} for doc_id, doc in zip(ids, saved)]
        for d in created:
            log_activity(
                self.store,
                "deliverable_uploaded",
                f"Designer uploaded {kind}: {d.get('originalName')}",
                user,
                projectId=project["id"],
                deliverableId=d["id"],
            )

        if project.get("designStatus") == DesignStatus.NOT_STARTED.value and is_legal_state(
            project.get("status"), DesignStatus.IN_PROGRESS.value
        ):
            ProjectRepository.update(
                self.store, project, {"designStatus": DesignStatus.IN_PROGRESS.value, "updatedAt": utcnow()}
            )

        note = f" - {description}" if description else ""
        notify_user(
            self.store,
            project.get("designLeadUid"),
            DESIGN_LEAD,
            "deliverable_uploaded",
            f"{user.name} uploaded {len(created)} {kind}(s) for {project.get('projectName')}{note}",
            projectId=project["id"],
        )
        notify_role(
            self.store,
            COO,
            "deliverable_uploaded",
            f"New deliverables uploaded for {project.get('projectName')} by {user.name}",
            projectId=project["id"],
        )
        return [self._present(d) for d in created]

    def add_links(self, data: LinkDeliverableCreate, user: CurrentUser) -> list[dict]:
        project = self._get_project_for_upload(data.projectId, user)
        saved = [
            {
                **self._base_document(project, user, data.description, data.taskId),
                "deliverableType": "link",
                "url": link.url,
                "fileName": None,
                "originalName": link.title or link.url,
                "linkDescription": link.description or "",
                "mimeType": "text/url",
                "fileSize": 0,
                "versionNumber": data.versionNumber,
            }
            for link in data.links
        ]
        return self._after_upload(project, saved, user, "link", data.description)

    def upload_files(
        self,
        project_id: str,
        files: list[IncomingFile],
        user: CurrentUser,
        description: str = "",
        task_id: Optional[str] = None,
        version_number: str = "1.0",
    ) -> list[dict]:
        if not project_id:
            raise HTTPException(status_code=400, detail="Project ID is required")
        project = self._get_project_for_upload(project_id, user)
        validate_files(files)

        uploaded_keys = []
        saved = []
        for f in files:
            key = build_key(f"deliverables/{project_id}", f.filename)
            try:
                upload_blob(key, f.contents, f.content_type)
            except Exception as e:
                logger.error(f"❌ Upload of {f.filename} failed, rolling back {len(uploaded_keys)} blob(s): {e}")
                for uploaded in uploaded_keys:
                    delete_blob(uploaded)
                raise HTTPException(status_code=500, detail=f"Failed to upload {f.filename}") from e
            uploaded_keys.append(key)
            saved.append(
                {
                    **self._base_document(project, user, description, task_id),
                    "deliverableType": "file",
                    "fileName": os.path.basename(key),
                    "originalName": f.filename,
                    "storagePath": key,
                    "mimeType": f.content_type,
                    "fileSize": len(f.contents),
                    "versionNumber": version_number,
                }
            )

        logger.info(f"✅ Uploaded {len(saved)} deliverable file(s) for project {project_id}")
        return self._after_upload(project, saved, user, "file", description)

    def apply_action(self, deliverable_id: str, request: ActionRequest, user: CurrentUser) -> dict:
        action = parse_action(DeliverableAction, request.action)
        deliverable = self.repo.get(self.store, deliverable_id)
        if not deliverable:
            raise HTTPException(status_code=404, detail="Deliverable not found")
        payload: ReviewData = authorize_transition(DELIVERABLE_TRANSITIONS, action, user, request.data)

        status = payload.reviewStatus.value
        self.repo.update(
            self.store,
            deliverable_id,
            {
                "reviewStatus": status,
                "reviewComments": payload.comments,
                "reviewedBy": user.name,
                "reviewedByUid": user.uid,
                "reviewedAt": utcnow(),
                "updatedAt": utcnow(),
            },
        )
        logger.info(f"✅ Deliverable {deliverable_id} reviewed: {status}")

        log_activity(
            self.store,
            "deliverable_reviewed",
            f"Deliverable {status}: {deliverable.get('originalName')}",
            user,
            projectId=deliverable.get("projectId"),
            deliverableId=deliverable_id,
        )
        comments = f": {payload.comments}" if payload.comments else ""
        notify_user(
            self.store,
            deliverable.get("uploadedByUid"),
            deliverable.get("uploadedByRole") or DESIGNER,
            "deliverable_reviewed",
            f'Your deliverable "{deliverable.get("originalName")}" has been {status}{comments}',
            priority="high" if payload.reviewStatus == ReviewStatus.REVISION_REQUIRED else "normal",
            projectId=deliverable.get("projectId"),
            deliverableId=deliverable_id,
        )
        return self._present(self.repo.get(self.store, deliverable_id))

    def delete_deliverable(self, deliverable_id: str, user: CurrentUser) -> None:
        deliverable = self.repo.get(self.store, deliverable_id)
        if not deliverable:
            raise HTTPException(status_code=404, detail="Deliverable not found")
        if deliverable.get("uploadedByUid") != user.uid:
            ensure_role(user, DESIGN_MANAGEMENT_ROLES)

        if deliverable.get("storagePath"):
            delete_blob(deliverable["storagePath"])
        self.repo.delete(self.store, deliverable_id)

        log_activity(
            self.store,
            "deliverable_deleted",
            f"Deliverable deleted: {deliverable.get('originalName')}",
            user,
            projectId=deliverable.get("projectId"),
            deliverableId=deliverable_id,
        )
