"""
Time request service - Requests for hours beyond a project's allocation

Approval adds the granted hours to project.additionalHours exactly once: the
status check and the increment share a transaction, so a retried approval is
rejected instead of counted twice.
"""

import logging
from typing import Optional

from fastapi import HTTPException

from ...auth import CurrentUser, ensure_role
from ...services.activity_service import log_activity
from ...services.notification_service import notify_role_members, notify_user
from ...services.outbox_service import dispatch_email
from ...shared.roles import COO, DESIGN_LEAD, DESIGNER, DIRECTOR, EXECUTIVE_ROLES
from ...shared.transitions import ActionRequest, Transition, authorize_transition, parse_action
from ...shared.validators import to_utc, utcnow
from ..projects.repository import PROJECTS, ProjectRepository
from ..timesheets.repository import TIMESHEETS, TimesheetRepository
from ..timesheets.service import project_budget
from .repository import TIME_REQUESTS, TimeRequestRepository
from .schemas import DELETABLE_STATUSES, ReviewData, TimeRequestAction, TimeRequestCreate, TimeRequestStatus

logger = logging.getLogger(__name__)

TIME_REQUEST_TRANSITIONS: dict[TimeRequestAction, Transition] = {
    TimeRequestAction.APPROVE: Transition(EXECUTIVE_ROLES, ReviewData),
    TimeRequestAction.REJECT: Transition(EXECUTIVE_ROLES, ReviewData),
    TimeRequestAction.REQUEST_INFO: Transition(EXECUTIVE_ROLES, ReviewData),
}

PAST_TENSE = {
    TimeRequestAction.APPROVE: "approved",
    TimeRequestAction.REJECT: "rejected",
    TimeRequestAction.REQUEST_INFO: "marked as needing more information",
}


class TimeRequestService:
    def __init__(self, store):
        self.store = store
        self.repo = TimeRequestRepository()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _with_project_hours(self, requests: list[dict]) -> list[dict]:
        projects = {p["id"]: p for p in ProjectRepository.get_many(self.store, [r.get("projectId") for r in requests])}
        enriched = []
        for request in requests:
            project = projects.get(request.get("projectId"), {})
            enriched.append(
                {
                    **request,
                    "projectName": project.get("projectName") or request.get("projectName"),
                    "projectCode": project.get("projectCode") or request.get("projectCode"),
                    "designLeadName": project.get("designLeadName") or request.get("designLeadName"),
                    "maxAllocatedHours": project.get("maxAllocatedHours") or 0,
                    "additionalHours": project.get("additionalHours") or 0,
                    "hoursLogged": project.get("hoursLogged") or 0,
                }
            )
        return enriched

    def get_request(self, request_id: str, user: CurrentUser) -> dict:
        request = self.repo.get(self.store, request_id)
        if not request:
            raise HTTPException(status_code=404, detail="Time request not found")
        allowed = (
            user.role in EXECUTIVE_ROLES
            or request.get("designerUid") == user.uid
            or (user.role == DESIGN_LEAD and request.get("designLeadUid") == user.uid)
        )
        if not allowed:
            raise HTTPException(status_code=403, detail="You do not have access to this time request")
        return self._with_project_hours([request])[0]

    def list_requests(
        self, user: CurrentUser, status: Optional[str] = None, project_id: Optional[str] = None, limit: int = 50
    ) -> list[dict]:
        filters = []
        if user.role in EXECUTIVE_ROLES:
            status = status or TimeRequestStatus.PENDING.value
            if status != "all":
                filters.append(("status", "==", status))
        elif user.role == DESIGNER:
            filters.append(("designerUid", "==", user.uid))
        elif user.role == DESIGN_LEAD:
            filters.append(("designLeadUid", "==", user.uid))
        else:
            raise HTTPException(status_code=403, detail="You do not have permission to view time requests")
        if project_id:
            filters.append(("projectId", "==", project_id))
        return self._with_project_hours(self.repo.list_requests(self.store, filters, limit))

    # ------------------------------------------------------------------
    # Create / delete
    # ------------------------------------------------------------------

    def create_request(self, data: TimeRequestCreate, user: CurrentUser) -> dict:
        ensure_role(user, (DESIGNER,))
        project = ProjectRepository.get(self.store, data.projectId)
        if not project:
            raise HTTPException(status_code=404, detail="Project not found")
        if user.uid not in (project.get("assignedDesigners") or []):
            raise HTTPException(status_code=403, detail="You are not assigned to this project")

        now = utcnow()
        request = {
            "projectId": data.projectId,
            "projectName": project.get("projectName"),
            "projectCode": project.get("projectCode"),
            "clientCompany": project.get("clientCompany"),
            "designerUid": user.uid,
            "designerName": user.name,
            "designerEmail": user.email,
            "designLeadUid": project.get("designLeadUid"),
            "designLeadName": project.get("designLeadName"),
            "requestedHours": data.requestedHours,
            "reason": data.reason,
            "attachmentUrl": data.attachmentUrl,
            "currentHoursLogged": project.get("hoursLogged") or 0,
            "currentAllocatedHours": project_budget(project),
            "pendingTimesheetData": data.pendingTimesheetData.model_dump() if data.pendingTimesheetData else None,
            "status": TimeRequestStatus.PENDING.value,
            "createdAt": now,
            "updatedAt": now,
        }
        request_id = self.repo.create(self.store, request)
        logger.info(f"📥 Time request {request_id}: {data.requestedHours:g}h on {data.projectId} by {user.uid}")

        name = project.get("projectName")
        message = f'{user.name} has requested {data.requestedHours:g}h additional time for "{name}"'
        log_activity(
            self.store,
            "time_request_created",
            f"Requested {data.requestedHours:g}h additional time for {name}",
            user,
            projectId=data.projectId,
            requestId=request_id,
        )
        notify_role_members(
            self.store,
            [COO, DIRECTOR],
            "time_request_created",
            message,
            priority="high",
            projectId=data.projectId,
            projectName=name,
            requestId=request_id,
        )
        notify_user(
            self.store,
            project.get("designLeadUid"),
            DESIGN_LEAD,
            "time_request_created",
            message,
            priority="high",
            projectId=data.projectId,
            projectName=name,
            requestId=request_id,
        )
        dispatch_email(
            self.store,
            "time_request.created",
            {
                "projectId": data.projectId,
                "projectName": name,
                "projectCode": project.get("projectCode"),
                "clientCompany": project.get("clientCompany"),
                "designerName": user.name,
                "requestedHours": data.requestedHours,
                "currentHoursLogged": request["currentHoursLogged"],
                "currentAllocatedHours": request["currentAllocatedHours"],
                "reason": data.reason,
                "designLeadEmail": project.get("designLeadEmail"),
            },
        )
        return {"id": request_id, **request}

    def delete_request(self, request_id: str, user: CurrentUser) -> None:
        request = self.repo.get(self.store, request_id)
        if not request:
            raise HTTPException(status_code=404, detail="Time request not found")
        if request.get("designerUid") != user.uid and user.role not in EXECUTIVE_ROLES:
            raise HTTPException(status_code=403, detail="You can only delete your own time requests")
        if request.get("status") not in DELETABLE_STATUSES:
            raise HTTPException(
                status_code=400, detail=f"Cannot delete a time request with status '{request.get('status')}'"
            )

        self.repo.delete(self.store, request_id)
        log_activity(
            self.store,
            "time_request_deleted",
            f"Deleted time request for {request.get('projectName')}",
            user,
            projectId=request.get("projectId"),
            requestId=request_id,
        )

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------

    def apply_action(self, request_id: str, body: ActionRequest, user: CurrentUser) -> dict:
        action = parse_action(TimeRequestAction, body.action)
        payload: ReviewData = authorize_transition(TIME_REQUEST_TRANSITIONS, action, user, body.data)
        comment = (payload.comment or "").strip() or None

        if action == TimeRequestAction.REJECT and not comment:
            raise HTTPException(status_code=400, detail="Comment is required for rejection")

        def _review(txn) -> tuple[dict, dict]:
            request = txn.get(TIME_REQUESTS, request_id)
            if not request:
                raise HTTPException(status_code=404, detail="Request not found")
            if request.get("status") == TimeRequestStatus.APPROVED.value:
                raise HTTPException(status_code=400, detail="This time request has already been approved")

            now = utcnow()
            updates = {
                "reviewedBy": user.name,
                "reviewedByUid": user.uid,
                "reviewComment": comment,
                "reviewedAt": now,
                "updatedAt": now,
            }
            if action == TimeRequestAction.REJECT:
                updates["status"] = TimeRequestStatus.REJECTED.value
            elif action == TimeRequestAction.REQUEST_INFO:
                updates["status"] = TimeRequestStatus.INFO_REQUESTED.value
            else:
                updates.update(self._approve(txn, request, payload, now))

            txn.update(TIME_REQUESTS, request_id, updates)
            return request, updates

        request, updates = self.store.run_transaction(_review)
        logger.info(f"✅ Time request {request_id} {updates['status']} by {user.uid}")
        self._after_review(request_id, request, updates, action, comment, user)
        return {**request, **updates}

    def _approve(self, txn, request: dict, payload: ReviewData, now) -> dict:
        """Transactional part of an approval; every read happens before any write"""
        hours = float(payload.approvedHours or request.get("requestedHours") or 0)
        if hours <= 0:
            raise HTTPException(status_code=400, detail="Approved hours must be greater than 0")

        project = txn.get(PROJECTS, request.get("projectId"))
        if not project:
            raise HTTPException(status_code=404, detail="Project not found")

        pending = request.get("pendingTimesheetData")
        attach = bool(payload.applyToTimesheet and pending)
        logged = TimesheetRepository.aggregate_hours(txn, project["id"]) if attach else None

        result = {"status": TimeRequestStatus.APPROVED.value, "approvedHours": hours}
        project_updates = {"additionalHours": float(project.get("additionalHours") or 0) + hours, "updatedAt": now}

        if attach:
            entry_hours = float(pending.get("hours") or 0)
            timesheet_id = txn.create(
                TIMESHEETS,
                {
                    "projectId": request.get("projectId"),
                    "projectName": request.get("projectName"),
                    "projectCode": request.get("projectCode"),
                    "designerUid": request.get("designerUid"),
                    "designerName": request.get("designerName"),
                    "designerEmail": request.get("designerEmail"),
                    "date": to_utc(pending.get("date")) or now,
                    "hours": entry_hours,
                    "description": pending.get("description") or "",
                    "status": "approved",
                    "additionalTimeApproved": True,
                    "timeRequestId": request["id"],
                    "createdAt": now,
                },
            )
            project_updates["hoursLogged"] = logged + entry_hours
            result["timesheetId"] = timesheet_id

        ProjectRepository.update_in_transaction(txn, project, project_updates)
        return result

    def _after_review(
        self, request_id: str, request: dict, updates: dict, action: TimeRequestAction, comment, user: CurrentUser
    ) -> None:
        name = request.get("projectName")
        requested = request.get("requestedHours") or 0

        if action == TimeRequestAction.APPROVE:
            detail = f"Approved {updates['approvedHours']:g}h additional time for {name}"
            designer_message = (
                f"Your request for {requested:g}h has been approved ({updates['approvedHours']:g}h granted)"
            )
        elif action == TimeRequestAction.REJECT:
            detail = f"Rejected time request for {name}"
            designer_message = f"Your request for {requested:g}h has been rejected. Reason: {comment}"
        else:
            detail = f"Requested more information for time request on {name}"
            designer_message = f"More information needed for your {requested:g}h request"
            if comment:
                designer_message += f": {comment}"

        context = {"projectId": request.get("projectId"), "projectName": name, "requestId": request_id}
        log_activity(self.store, f"time_request_{action.value}", detail, user, **context)
        notify_user(
            self.store,
            request.get("designerUid"),
            DESIGNER,
            f"time_request_{action.value}",
            designer_message,
            priority="high" if action == TimeRequestAction.APPROVE else "normal",
            **context,
        )
        notify_user(
            self.store,
            request.get("designLeadUid"),
            DESIGN_LEAD,
            f"time_request_{action.value}",
            f'Time request for "{name}" has been {PAST_TENSE[action]} by {user.name}',
            **context,
        )

        email = {
            "projectId": request.get("projectId"),
            "projectName": name,
            "projectCode": request.get("projectCode"),
            "requestedHours": requested,
            "designerName": request.get("designerName"),
            "designerEmail": request.get("designerEmail"),
        }
        if action == TimeRequestAction.APPROVE:
            dispatch_email(
                self.store,
                "time_request.approved",
                {**email, "approvedHours": updates["approvedHours"], "approvedBy": user.name, "comments": comment},
            )
        elif action == TimeRequestAction.REJECT:
            dispatch_email(
                self.store,
                "time_request.rejected",
                {**email, "rejectedBy": user.name, "rejectReason": comment},
            )
