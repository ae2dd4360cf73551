"""
Submission service - Design submissions to the client and the client's verdict

A submission and the project's design state move together: both writes share
one transaction, and the project half is checked against the legal
(status, designStatus) pairs before anything is written.
"""

import logging
from typing import Optional

from fastapi import HTTPException

from ...auth import CurrentUser, ensure_role
from ...services.activity_service import log_activity
from ...services.notification_service import notify_role, notify_user
from ...shared.roles import ACCOUNTS, BDM, COO, DESIGN_LEAD, DESIGN_MANAGEMENT_ROLES, DIRECTOR
from ...shared.transitions import ActionRequest, Outcome, Transition, authorize_transition, parse_action
from ...shared.validators import utcnow
from ..projects.repository import PROJECTS, ProjectRepository
from ..projects.states import DesignStatus, ProjectStatus
from .repository import SUBMISSIONS, SubmissionRepository
from .schemas import (
    ClientFeedback,
    ClientFeedbackData,
    RevisedSubmissionData,
    SubmissionAction,
    SubmissionCreate,
)

logger = logging.getLogger(__name__)

SUBMISSION_TRANSITIONS: dict[SubmissionAction, Transition] = {
    SubmissionAction.CLIENT_FEEDBACK: Transition((BDM, COO, DIRECTOR), ClientFeedbackData),
    SubmissionAction.REVISED_SUBMISSION: Transition(DESIGN_MANAGEMENT_ROLES, RevisedSubmissionData),
}

# Project fields written for each client verdict
FEEDBACK_PROJECT_UPDATES = {
    ClientFeedback.APPROVED: {"designStatus": DesignStatus.APPROVED.value, "status": ProjectStatus.COMPLETED.value},
    ClientFeedback.REVISION_REQUIRED: {"designStatus": DesignStatus.REVISION_REQUIRED.value},
    ClientFeedback.REJECTED: {"designStatus": DesignStatus.REJECTED.value, "status": ProjectStatus.ON_HOLD.value},
}


class SubmissionService:
    def __init__(self, store):
        self.store = store
        self.repo = SubmissionRepository()

    def list_submissions(
        self, user: CurrentUser, project_id: Optional[str] = None, client_feedback: Optional[str] = None
    ) -> list[dict]:
        return self.repo.list_submissions(self.store, project_id, client_feedback)

    def _notify_roles(self, roles, project: dict, notification_type: str, message: str, **context) -> None:
        """BDM gets a uid-addressed copy for their own project; other roles a role copy"""
        for role in roles:
            if role == BDM:
                notify_user(self.store, project.get("bdmUid"), BDM, notification_type, message, **context)
            else:
                notify_role(self.store, role, notification_type, message, **context)

    def create_submission(self, data: SubmissionCreate, user: CurrentUser) -> dict:
        ensure_role(user, DESIGN_MANAGEMENT_ROLES)

        def _submit(txn):
            project = txn.get(PROJECTS, data.projectId)
            if not project:
                raise HTTPException(status_code=404, detail="Project not found")
            if user.role == DESIGN_LEAD and project.get("designLeadUid") != user.uid:
                raise HTTPException(status_code=403, detail="You are not the allocated Design Lead for this project")

            now = utcnow()
            submission = {
                "projectId": data.projectId,
                "projectCode": project.get("projectCode"),
                "projectName": project.get("projectName"),
                "clientCompany": project.get("clientCompany"),
                "submissionType": data.submissionType,
                "description": data.description,
                "submissionDate": data.submissionDate or now,
                "submittedTo": data.submittedTo or project.get("clientCompany") or "",
                "submissionMethod": data.submissionMethod,
                "drawingNumbers": data.drawingNumbers,
                "documentTypes": data.documentTypes,
                "fileUrls": data.fileUrls,
                "submissionProofUrl": data.submissionProofUrl,
                "submittedByUid": user.uid,
                "submittedByName": user.name,
                "submittedAt": now,
                "clientFeedback": ClientFeedback.PENDING.value,
                "feedbackNotes": "",
                "feedbackDate": None,
                "revisionCount": 0,
                "updatedAt": now,
            }
            ProjectRepository.update_in_transaction(
                txn,
                project,
                {"designStatus": DesignStatus.SUBMITTED.value, "lastSubmissionDate": now, "updatedAt": now},
            )
            submission_id = txn.create(SUBMISSIONS, submission)
            return project, {"id": submission_id, **submission}

        project, submission = self.store.run_transaction(_submit)
        logger.info(f"✅ Submission {submission['id']} recorded for project {data.projectId}")

        log_activity(
            self.store,
            "design_submitted",
            f"Design submitted to {submission['submittedTo']} for {project.get('projectName')}",
            user,
            projectId=data.projectId,
            submissionId=submission["id"],
        )
        self._notify_roles(
            (BDM, COO, DIRECTOR, ACCOUNTS),
            project,
            "design_submitted",
            f"Design submitted to {project.get('clientCompany')}. Awaiting feedback.",
            projectId=data.projectId,
            submissionId=submission["id"],
        )
        return submission

    def apply_action(self, submission_id: str, request: ActionRequest, user: CurrentUser) -> dict:
        action = parse_action(SubmissionAction, request.action)
        payload = authorize_transition(SUBMISSION_TRANSITIONS, action, user, request.data)
        handler = getattr(self, f"_{action.value}")

        def _apply(txn):
            submission = txn.get(SUBMISSIONS, submission_id)
            if not submission:
                raise HTTPException(status_code=404, detail="Submission not found")
            project = txn.get(PROJECTS, submission.get("projectId"))
            if not project:
                raise HTTPException(status_code=404, detail="Project not found")

            now = utcnow()
            outcome, project_updates = handler(submission, project, payload)
            ProjectRepository.update_in_transaction(txn, project, {**project_updates, "updatedAt": now})
            txn.update(SUBMISSIONS, submission_id, {**outcome.updates, "updatedAt": now})
            return submission, outcome

        submission, outcome = self.store.run_transaction(_apply)
        logger.info(f"✅ Submission {submission_id}: {action.value} by {user.uid}")

        log_activity(
            self.store,
            f"submission_{action.value}",
            outcome.detail,
            user,
            projectId=submission.get("projectId"),
            submissionId=submission_id,
        )
        for effect in outcome.effects:
            effect()
        return self.repo.get(self.store, submission_id)

    def _client_feedback(self, submission: dict, project: dict, payload: ClientFeedbackData):
        now = utcnow()
        updates = {"clientFeedback": payload.feedback.value, "feedbackNotes": payload.notes, "feedbackDate": now}
        context = {"projectId": submission.get("projectId"), "submissionId": submission.get("id")}
        name = submission.get("projectName")

        if payload.feedback == ClientFeedback.APPROVED:
            detail = "Client approved the design"
            roles = (BDM, COO, DIRECTOR, ACCOUNTS)
            message = f"Client approved {name}. Check payment milestone."
        elif payload.feedback == ClientFeedback.REVISION_REQUIRED:
            updates["revisionCount"] = (submission.get("revisionCount") or 0) + 1
            detail = "Client requested revision"
            roles = (DESIGN_LEAD, COO, DIRECTOR)
            message = f"Client requested revision for {name}: {payload.notes}"
        else:
            detail = "Client rejected the design"
            roles = (BDM, COO, DIRECTOR, DESIGN_LEAD)
            message = f"Client rejected {name}. Immediate action required."

        effects = [
            lambda: self._notify_roles(roles, project, "submission_client_feedback", message, **context),
        ]
        if payload.feedback == ClientFeedback.APPROVED:
            effects.append(
                lambda: notify_role(
                    self.store,
                    ACCOUNTS,
                    "milestone_check",
                    f"Design approved for {name}. Please check payment milestone.",
                    priority="high",
                    **context,
                )
            )
        return Outcome(updates, detail, effects), FEEDBACK_PROJECT_UPDATES[payload.feedback]

    def _revised_submission(self, submission: dict, project: dict, payload: RevisedSubmissionData):
        updates = {
            "clientFeedback": ClientFeedback.PENDING.value,
            "revisedSubmissionDate": utcnow(),
            "submissionProofUrl": payload.proofUrl or submission.get("submissionProofUrl", ""),
        }
        if payload.fileUrls is not None:
            updates["fileUrls"] = payload.fileUrls
        message = f"Revised design submitted to {submission.get('clientCompany')}"
        context = {"projectId": submission.get("projectId"), "submissionId": submission.get("id")}
        effects = [
            lambda: self._notify_roles((BDM, COO, DIRECTOR), project, "submission_revised_submission", message, **context)
        ]
        return (
            Outcome(updates, "Revised design submitted to client", effects),
            {"designStatus": DesignStatus.SUBMITTED.value},
        )
