"""Project service - Allocation, designer assignment and completion"""

import logging
import re
from typing import Optional

from fastapi import HTTPException

from ...auth import CurrentUser, check_project_access, ensure_role
from ...services.activity_service import log_activity
from ...services.notification_service import notify_role, notify_user
from ...services.outbox_service import dispatch_email
from ...shared.roles import ACCOUNTS, BDM, COO, DESIGN_LEAD, DESIGNER, DIRECTOR, EXECUTIVE_ROLES
from ...shared.transitions import ActionRequest, Outcome, Transition, authorize_transition, parse_action
from ...shared.validators import utcnow
from ..proposals.repository import ProposalRepository
from ..users.repository import UserRepository
from ..variations.repository import VariationRepository
from .repository import ProjectRepository
from .schemas import ACTION_ALIASES, AllocationData, AssignDesignersData, ProjectAction, ProjectCreateRequest
from .states import DesignStatus, ProjectStatus

logger = logging.getLogger(__name__)

PROJECT_TRANSITIONS: dict[ProjectAction, Transition] = {
    ProjectAction.ALLOCATE_TO_DESIGN_LEAD: Transition((COO, DIRECTOR), AllocationData),
    ProjectAction.ASSIGN_DESIGNERS: Transition((DESIGN_LEAD, COO, DIRECTOR), AssignDesignersData),
    ProjectAction.MARK_COMPLETE: Transition((DESIGN_LEAD, COO, DIRECTOR)),
}

VARIATION_SUFFIX = re.compile(r"-V(\d+)$")


class ProjectService:
    """Service layer for project business logic"""

    def __init__(self, store):
        self.store = store
        self.repo = ProjectRepository()

    def _get_or_404(self, project_id: str) -> dict:
        project = self.repo.get(self.store, project_id)
        if not project:
            raise HTTPException(status_code=404, detail="Project not found")
        return project

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_project(self, project_id: str, user: CurrentUser) -> dict:
        project = self._get_or_404(project_id)
        check_project_access(user, project)
        return project

    def list_projects(self, user: CurrentUser, status: Optional[str] = None) -> list[dict]:
        if user.role == DESIGNER:
            return self.repo.list_for_designer(self.store, user.uid, status)
        if user.role == DESIGN_LEAD:
            return self.repo.list_for_design_lead(self.store, user.uid, status)
        if user.role == BDM:
            return self.repo.list_for_bdm(self.store, user.uid, status)
        return self.repo.list_all(self.store, status)

    def generate_variation_code(self, parent_id: str) -> dict:
        if not parent_id:
            raise HTTPException(status_code=400, detail="Parent Project ID (parentId) is required.")
        project = self.repo.get(self.store, parent_id)
        if not project:
            raise HTTPException(status_code=404, detail="Parent project not found.")

        max_num = 0
        for variation in VariationRepository.list_for_parent(self.store, parent_id):
            match = VARIATION_SUFFIX.search(variation.get("variationCode") or "")
            if match:
                max_num = max(max_num, int(match.group(1)))

        next_num = max_num + 1
        return {"variationCode": f"{project.get('projectCode')}-V{next_num}", "variationNumber": next_num}

    # ------------------------------------------------------------------
    # Create / delete
    # ------------------------------------------------------------------

    def create_from_proposal(self, request: ProjectCreateRequest, user: CurrentUser) -> dict:
        if request.action != "create_from_proposal":
            raise HTTPException(status_code=400, detail="Invalid action")
        ensure_role(user, EXECUTIVE_ROLES)
        if not request.proposalId:
            raise HTTPException(status_code=400, detail="Proposal ID is required")

        proposal = ProposalRepository.get(self.store, request.proposalId)
        if not proposal:
            raise HTTPException(status_code=404, detail="Proposal not found")
        if proposal.get("status") != "won":
            raise HTTPException(status_code=400, detail="Only WON proposals can be converted to projects")

        if proposal.get("projectCreated") and proposal.get("projectId"):
            if self.repo.get(self.store, proposal["projectId"]):
                logger.info(f"ℹ️ Project already exists for proposal {request.proposalId}")
                return {"projectId": proposal["projectId"], "alreadyExists": True}

        pricing = proposal.get("pricing") or {}
        now = utcnow()
        project = {
            "proposalId": request.proposalId,
            "projectName": proposal.get("projectName"),
            "projectCode": pricing.get("projectNumber") or "PENDING",
            "clientCompany": proposal.get("clientCompany"),
            "clientContact": proposal.get("clientContact") or "",
            "clientEmail": proposal.get("clientEmail") or "",
            "clientPhone": proposal.get("clientPhone") or "",
            "projectType": proposal.get("projectType"),
            "country": proposal.get("country") or "",
            "timeline": proposal.get("timeline"),
            "priority": proposal.get("priority"),
            "scopeOfWork": proposal.get("scopeOfWork"),
            "bdmName": proposal.get("createdByName") or "Unknown",
            "bdmUid": proposal.get("createdByUid") or "",
            "bdmEmail": proposal.get("createdByEmail") or "",
            "quoteValue": pricing.get("quoteValue") or 0,
            "currency": pricing.get("currency") or "USD",
            "status": ProjectStatus.PENDING_ALLOCATION.value,
            "designStatus": DesignStatus.NOT_STARTED.value,
            "maxAllocatedHours": 0,
            "additionalHours": 0,
            "totalAllocatedHours": 0,
            "hoursLogged": 0,
            "assignedDesigners": [],
            "totalInvoiced": 0,
            "createdAt": now,
            "updatedAt": now,
            "createdByName": user.name,
            "createdByUid": user.uid,
            "createdByRole": user.role,
        }
        project_id = self.repo.create(self.store, project)

        ProposalRepository.update(
            self.store,
            request.proposalId,
            {
                "projectCreated": True,
                "projectId": project_id,
                "projectCreatedAt": now,
                "allocationStatus": "pending_allocation",
                "updatedAt": now,
            },
        )
        log_activity(
            self.store,
            "project_created",
            f"Project created from proposal: {proposal.get('projectName')}",
            user,
            projectId=project_id,
            proposalId=request.proposalId,
        )
        logger.info(f"✅ Project {project_id} created from proposal {request.proposalId}")
        return {"projectId": project_id, "alreadyExists": False}

    def delete_project(self, project_id: str, user: CurrentUser) -> None:
        ensure_role(user, EXECUTIVE_ROLES)
        project = self._get_or_404(project_id)
        self.repo.delete(self.store, project_id)
        log_activity(
            self.store,
            "project_deleted",
            f"Project deleted: {project.get('projectName')}",
            user,
            projectId=project_id,
            projectName=project.get("projectName"),
        )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def apply_action(self, project_id: str, request: ActionRequest, user: CurrentUser) -> dict:
        action = parse_action(ProjectAction, request.action, ACTION_ALIASES)
        project = self._get_or_404(project_id)
        payload = authorize_transition(PROJECT_TRANSITIONS, action, user, request.data)

        outcome = getattr(self, f"_{action.value}")(project, payload, user)
        self.repo.update(self.store, project, {**outcome.updates, "updatedAt": utcnow()})
        logger.info(f"✅ Project {project_id}: {action.value} by {user.role} {user.uid}")

        log_activity(
            self.store,
            f"project_{action.value}",
            outcome.detail,
            user,
            projectId=project_id,
            projectName=project.get("projectName"),
        )
        for effect in outcome.effects:
            effect()
        return self.repo.get(self.store, project_id)

    def _require_allocated_lead(self, project: dict, user: CurrentUser) -> None:
        if user.role == DESIGN_LEAD and project.get("designLeadUid") != user.uid:
            raise HTTPException(status_code=403, detail="You are not the allocated Design Lead for this project")

    def _allocate_to_design_lead(self, project: dict, payload: AllocationData, user: CurrentUser) -> Outcome:
        if not payload.designLeadUid:
            raise HTTPException(status_code=400, detail="Design Lead UID is required")
        if not payload.allocationNotes or not payload.allocationNotes.strip():
            raise HTTPException(status_code=400, detail="Allocation notes are required")

        lead = UserRepository.get(self.store, payload.designLeadUid)
        if not lead:
            raise HTTPException(status_code=404, detail="Design Lead user not found")
        if lead.get("role") != DESIGN_LEAD:
            raise HTTPException(status_code=400, detail="Selected user is not a Design Lead")

        max_hours = float(payload.maxAllocatedHours or 0)
        if max_hours <= 0:
            raise HTTPException(status_code=400, detail="Max Allocated Hours must be greater than 0")

        now = utcnow()
        updates = {
            "designLeadName": lead.get("name"),
            "designLeadUid": payload.designLeadUid,
            "designLeadEmail": lead.get("email"),
            "allocatedAt": now,
            "allocatedBy": user.name,
            "allocatedByUid": user.uid,
            "projectStartDate": payload.projectStartDate or now,
            "targetCompletionDate": payload.targetCompletionDate,
            "allocationNotes": payload.allocationNotes.strip(),
            "specialInstructions": payload.specialInstructions,
            "priority": payload.priority,
            "status": ProjectStatus.ASSIGNED.value,
            "designStatus": DesignStatus.ALLOCATED.value,
            "maxAllocatedHours": max_hours,
            "additionalHours": float(payload.additionalHours or 0),
        }

        pid = project["id"]
        name = project.get("projectName")
        effects = [
            lambda: notify_user(
                self.store,
                payload.designLeadUid,
                DESIGN_LEAD,
                "project_allocated",
                f'New project allocated: "{name}" ({max_hours:g} hours)',
                priority="high",
                projectId=pid,
                projectName=name,
                clientCompany=project.get("clientCompany"),
                allocatedBy=user.name,
            ),
            lambda: notify_user(
                self.store,
                project.get("bdmUid"),
                BDM,
                "project_allocated",
                f'Project "{name}" has been allocated to {lead.get("name")}',
                projectId=pid,
            ),
            lambda: dispatch_email(
                self.store,
                "project.allocated",
                {
                    "projectId": pid,
                    "projectName": name,
                    "projectCode": project.get("projectCode"),
                    "clientCompany": project.get("clientCompany"),
                    "designLeadName": lead.get("name"),
                    "designLeadEmail": lead.get("email"),
                    "maxAllocatedHours": max_hours,
                    "targetCompletionDate": payload.targetCompletionDate,
                    "allocationNotes": updates["allocationNotes"],
                },
            ),
        ]
        detail = f"Project allocated to Design Lead: {lead.get('name')} by {user.name} with {max_hours:g} hours."
        return Outcome(updates, detail, effects)

    def _assign_designers(self, project: dict, payload: AssignDesignersData, user: CurrentUser) -> Outcome:
        self._require_allocated_lead(project, user)
        if not payload.designerUids:
            raise HTTPException(status_code=400, detail="At least one designer must be assigned")

        total_hours = sum(payload.designerHours.get(uid, 0) for uid in payload.designerUids)
        budget = (project.get("maxAllocatedHours") or 0) + (project.get("additionalHours") or 0)
        if budget > 0 and total_hours > budget:
            raise HTTPException(
                status_code=400,
                detail=f"Total allocated hours ({total_hours:g}) exceeds available budget ({budget:g})",
            )

        users = {u["id"]: u for u in UserRepository.get_many(self.store, payload.designerUids)}
        designers = []
        for i, uid in enumerate(payload.designerUids):
            designer = users.get(uid)
            if not designer:
                raise HTTPException(status_code=400, detail=f"Designer not found: {uid}")
            if designer.get("role") != DESIGNER:
                raise HTTPException(status_code=400, detail=f"User {designer.get('name')} is not a designer")
            email = payload.designerEmails[i] if i < len(payload.designerEmails) else designer.get("email")
            designers.append({"uid": uid, "name": designer.get("name"), "email": email or designer.get("email")})

        # Allocation is replaced, never merged with a previous assignment
        updates = {
            "assignedDesigners": [d["uid"] for d in designers],
            "assignedDesignerNames": [d["name"] for d in designers],
            "assignedDesignerEmails": [d["email"] for d in designers],
            "assignedDesignerHours": {d["uid"]: payload.designerHours.get(d["uid"], 0) for d in designers},
            "assignmentDate": utcnow(),
            "assignedBy": user.name,
            "assignedByUid": user.uid,
            "totalAllocatedHours": total_hours,
            "status": ProjectStatus.IN_PROGRESS.value,
            "designStatus": DesignStatus.IN_PROGRESS.value,
        }

        effects = []
        for designer in designers:
            effects.append(self._designer_effect(project, designer, payload.designerHours.get(designer["uid"], 0), user))

        detail = f"Designers assigned: {', '.join(d['name'] or d['uid'] for d in designers)} with a total of {total_hours:g} hours."
        return Outcome(updates, detail, effects)

    def _designer_effect(self, project: dict, designer: dict, hours: float, user: CurrentUser):
        pid = project["id"]
        name = project.get("projectName")

        def _notify():
            notify_user(
                self.store,
                designer["uid"],
                DESIGNER,
                "project_assigned",
                f'New project assigned: "{name}" ({hours:g} hours allocated)',
                priority="high",
                projectId=pid,
                projectName=name,
                clientCompany=project.get("clientCompany"),
                assignedBy=user.name,
                allocatedHours=hours,
            )
            dispatch_email(
                self.store,
                "designer.allocated",
                {
                    "projectId": pid,
                    "projectName": name,
                    "projectCode": project.get("projectCode"),
                    "designerName": designer["name"],
                    "designerEmail": designer["email"],
                    "allocatedHours": hours,
                    "assignedBy": user.name,
                },
            )

        return _notify

    def _mark_complete(self, project: dict, payload, user: CurrentUser) -> Outcome:
        self._require_allocated_lead(project, user)
        updates = {
            "status": ProjectStatus.COMPLETED.value,
            "designStatus": DesignStatus.COMPLETED.value,
            "completedAt": utcnow(),
            "completedBy": user.name,
            "completedByUid": user.uid,
        }
        pid = project["id"]
        name = project.get("projectName")
        effects = [
            lambda: notify_role(
                self.store,
                ACCOUNTS,
                "project_completed",
                f'Project "{name}" is complete and ready for invoicing.',
                priority="high",
                projectId=pid,
                projectName=name,
                clientCompany=project.get("clientCompany"),
            ),
            lambda: notify_user(
                self.store,
                project.get("bdmUid"),
                BDM,
                "project_completed",
                f'Your project "{name}" has been marked complete by the design team.',
                projectId=pid,
            ),
        ]
        return Outcome(updates, f"Project marked as COMPLETED by {user.name}.", effects)
