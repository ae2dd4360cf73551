"""Variation service - Scope variations and their hour budget approvals"""

import logging
from typing import Optional

from fastapi import HTTPException

from ...auth import CurrentUser, ensure_role
from ...services.activity_service import log_activity
from ...services.notification_service import notify_role_members, notify_user
from ...services.outbox_service import dispatch_email
from ...shared.roles import COO, DESIGN_LEAD, EXECUTIVE_ROLES
from ...shared.transitions import ActionRequest, Transition, authorize_transition, parse_action
from ...shared.validators import utcnow
from ..projects.repository import PROJECTS, ProjectRepository
from .repository import VARIATIONS, VariationRepository
from .schemas import ReviewVariationData, VariationAction, VariationCreate, VariationStatus

logger = logging.getLogger(__name__)

VARIATION_TRANSITIONS: dict[VariationAction, Transition] = {
    VariationAction.REVIEW_VARIATION: Transition(EXECUTIVE_ROLES, ReviewVariationData),
}


class VariationService:
    def __init__(self, store):
        self.store = store
        self.repo = VariationRepository()

    def get_variation(self, variation_id: str, user: CurrentUser) -> dict:
        ensure_role(user, EXECUTIVE_ROLES)
        variation = self.repo.get(self.store, variation_id)
        if not variation:
            raise HTTPException(status_code=404, detail="Variation not found.")
        return variation

    def list_variations(
        self, user: CurrentUser, status: Optional[str] = None, parent_project_id: Optional[str] = None
    ) -> list[dict]:
        if user.role in EXECUTIVE_ROLES:
            return self.repo.list_variations(self.store, status=status, parent_id=parent_project_id)
        if user.role == DESIGN_LEAD:
            return self.repo.list_variations(self.store, created_by=user.uid, parent_id=parent_project_id)
        raise HTTPException(status_code=403, detail="You do not have permission to view variations.")

    def create_variation(self, data: VariationCreate, user: CurrentUser) -> str:
        ensure_role(user, (DESIGN_LEAD,))
        project = ProjectRepository.get(self.store, data.parentProjectId)
        if not project:
            raise HTTPException(status_code=404, detail="Parent project not found.")
        if self.repo.code_exists(self.store, data.parentProjectId, data.variationCode):
            raise HTTPException(status_code=400, detail="This Variation Code already exists for this project.")

        now = utcnow()
        variation_id = self.repo.create(
            self.store,
            {
                "parentProjectId": data.parentProjectId,
                "parentProjectName": project.get("projectName"),
                "parentProjectCode": project.get("projectCode"),
                "clientCompany": project.get("clientCompany"),
                "variationCode": data.variationCode,
                "estimatedHours": data.estimatedHours,
                "scopeDescription": data.scopeDescription,
                "status": VariationStatus.PENDING_COO_APPROVAL.value,
                "createdByUid": user.uid,
                "createdByName": user.name,
                "createdByRole": user.role,
                "createdAt": now,
                "updatedAt": now,
            },
        )

        log_activity(
            self.store,
            "variation_created",
            f'Variation "{data.variationCode}" ({data.estimatedHours:g}h) submitted for approval by {user.name}',
            user,
            projectId=data.parentProjectId,
            variationId=variation_id,
        )
        notify_role_members(
            self.store,
            [COO],
            "variation_pending_approval",
            f'New variation "{data.variationCode}" for {project.get("projectName")} requires approval.',
            priority="high",
            projectId=data.parentProjectId,
            variationId=variation_id,
            estimatedHours=data.estimatedHours,
            submittedBy=user.name,
        )
        dispatch_email(
            self.store,
            "variation.requested",
            {
                "projectId": data.parentProjectId,
                "projectName": project.get("projectName"),
                "projectCode": project.get("projectCode"),
                "clientCompany": project.get("clientCompany"),
                "variationCode": data.variationCode,
                "estimatedHours": data.estimatedHours,
                "scopeDescription": data.scopeDescription,
                "requestedBy": user.name,
            },
        )
        return variation_id

    def apply_action(self, variation_id: str, request: ActionRequest, user: CurrentUser) -> dict:
        action = parse_action(VariationAction, request.action)
        payload: ReviewVariationData = authorize_transition(VARIATION_TRANSITIONS, action, user, request.data)
        status = payload.status.value

        if payload.status == VariationStatus.REJECTED and not payload.notes.strip():
            raise HTTPException(status_code=400, detail="Rejection notes are required.")
        if payload.status == VariationStatus.APPROVED and not (payload.approvedHours and payload.approvedHours > 0):
            raise HTTPException(status_code=400, detail="Approved Hours must be greater than 0.")

        def _review(txn) -> dict:
            variation = txn.get(VARIATIONS, variation_id)
            if not variation:
                raise HTTPException(status_code=404, detail="Variation not found.")
            if variation.get("status") != VariationStatus.PENDING_COO_APPROVAL.value:
                raise HTTPException(status_code=400, detail=f"Variation has already been {variation.get('status')}.")
            project = None
            if payload.status == VariationStatus.APPROVED:
                project = txn.get(PROJECTS, variation.get("parentProjectId"))
                if not project:
                    raise HTTPException(status_code=404, detail="Parent project not found.")

            now = utcnow()
            txn.update(
                VARIATIONS,
                variation_id,
                {
                    "status": status,
                    "approvalNotes": payload.notes,
                    "approvedHours": payload.approvedHours if project else None,
                    "approvedByUid": user.uid,
                    "approvedByName": user.name,
                    "approvedAt": now,
                    "updatedAt": now,
                },
            )
            if project:
                txn.update(
                    PROJECTS,
                    project["id"],
                    {
                        "additionalHours": (project.get("additionalHours") or 0) + payload.approvedHours,
                        "updatedAt": now,
                    },
                )
            return variation

        variation = self.store.run_transaction(_review)
        logger.info(f"✅ Variation {variation_id} {status} by {user.uid}")

        log_activity(
            self.store,
            f"variation_{status}",
            f'Variation "{variation.get("variationCode")}" was {status} by {user.name}.',
            user,
            projectId=variation.get("parentProjectId"),
            variationId=variation_id,
        )
        notify_user(
            self.store,
            variation.get("createdByUid"),
            DESIGN_LEAD,
            f"variation_{status}",
            f'Your variation "{variation.get("variationCode")}" for {variation.get("parentProjectName")} was {status}.',
            projectId=variation.get("parentProjectId"),
            variationId=variation_id,
            notes=payload.notes or "No notes provided.",
        )
        if payload.status == VariationStatus.APPROVED:
            dispatch_email(
                self.store,
                "variation.approved_detail",
                {
                    "projectId": variation.get("parentProjectId"),
                    "projectName": variation.get("parentProjectName"),
                    "projectCode": variation.get("parentProjectCode"),
                    "clientCompany": variation.get("clientCompany"),
                    "variationCode": variation.get("variationCode"),
                    "approvedHours": payload.approvedHours,
                    "approvedBy": user.name,
                },
            )
        return self.repo.get(self.store, variation_id)
