"""Proposal service - Business logic for the proposal lifecycle"""

import logging

from fastapi import HTTPException

from ...auth import CurrentUser, check_proposal_access
from ...services.activity_service import log_activity
from ...services.notification_service import notify_role, notify_user
from ...services.outbox_service import dispatch_email
from ...shared.roles import BDM, COO, DESIGN_LEAD, DESIGNER, DIRECTOR, ESTIMATOR
from ...shared.transitions import ActionRequest, Outcome, Transition, authorize_transition, parse_action
from ...shared.validators import timestamp_key, utcnow
from ...storage import delete_blob
from ..files.repository import FileRepository
from ..projects.repository import ProjectRepository
from .repository import ProposalRepository
from .schemas import (
    AddLinksData,
    AllocationStatusData,
    ApprovalData,
    EstimationData,
    LostData,
    PricingData,
    ProjectNumberData,
    ProposalAction,
    ProposalCreate,
    ProposalStatus,
    ReasonData,
    UpdateDetailsData,
    WonData,
)

logger = logging.getLogger(__name__)

# None = any authenticated role (BDMs are still limited to their own proposals)
PROPOSAL_TRANSITIONS: dict[ProposalAction, Transition] = {
    ProposalAction.UPDATE_DETAILS: Transition(None, UpdateDetailsData),
    ProposalAction.ADD_LINKS: Transition(None, AddLinksData),
    ProposalAction.ADD_ESTIMATION: Transition((ESTIMATOR, COO), EstimationData),
    ProposalAction.ADD_PRICING: Transition((COO,), PricingData),
    ProposalAction.SET_PROJECT_NUMBER: Transition((COO,), ProjectNumberData),
    ProposalAction.APPROVE_PROJECT_NUMBER: Transition((DIRECTOR,)),
    ProposalAction.REJECT_PROJECT_NUMBER: Transition((DIRECTOR,), ReasonData),
    ProposalAction.APPROVE_PROPOSAL: Transition((DIRECTOR,), ApprovalData),
    ProposalAction.REJECT_PROPOSAL: Transition((DIRECTOR,), ReasonData),
    ProposalAction.SUBMIT_TO_CLIENT: Transition((BDM,)),
    ProposalAction.MARK_WON: Transition(None, WonData),
    ProposalAction.MARK_LOST: Transition(None, LostData),
    ProposalAction.UPDATE_ALLOCATION_STATUS: Transition((COO, DIRECTOR), AllocationStatusData),
}

CREATE_ROLES = (BDM, COO, DIRECTOR)


class ProposalService:
    """Service layer for proposal business logic"""

    def __init__(self, store):
        self.store = store
        self.repo = ProposalRepository()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_proposal(self, proposal_id: str, user: CurrentUser) -> dict:
        proposal = self.repo.get(self.store, proposal_id)
        if not proposal:
            raise HTTPException(status_code=404, detail="Proposal not found")

        check_proposal_access(user, proposal)

        if user.role in (DESIGN_LEAD, DESIGNER):
            if not proposal.get("projectCreated") or not proposal.get("projectId"):
                raise HTTPException(status_code=403, detail="This proposal has not been converted to a project yet.")
            project = ProjectRepository.get(self.store, proposal["projectId"])
            if user.role == DESIGN_LEAD:
                allowed = bool(project) and project.get("designLeadUid") == user.uid
            else:
                allowed = bool(project) and user.uid in (project.get("assignedDesigners") or [])
            if not allowed:
                raise HTTPException(status_code=403, detail="This proposal is not assigned to you.")

        return proposal

    def list_proposals(self, user: CurrentUser) -> list[dict]:
        if user.role == BDM:
            return self.repo.list_by_creator(self.store, user.uid)

        if user.role in (DESIGN_LEAD, DESIGNER):
            if user.role == DESIGN_LEAD:
                projects = ProjectRepository.list_for_design_lead(self.store, user.uid)
            else:
                projects = ProjectRepository.list_for_designer(self.store, user.uid)
            proposal_ids = [p["proposalId"] for p in projects if p.get("proposalId")]
            proposals = self.repo.get_many(self.store, proposal_ids)
            return sorted(proposals, key=timestamp_key(), reverse=True)

        return self.repo.list_all(self.store)

    # ------------------------------------------------------------------
    # Create / delete
    # ------------------------------------------------------------------

    def create_proposal(self, data: ProposalCreate, user: CurrentUser) -> dict:
        if user.role not in CREATE_ROLES:
            raise HTTPException(
                status_code=403,
                detail=f"Access denied. Your role is '{user.role}'. Required: {', '.join(CREATE_ROLES)}",
            )
        logger.info(f"📥 Creating proposal '{data.projectName}' for {user.uid}")

        now = utcnow()
        proposal = {
            "projectName": data.projectName,
            "clientCompany": data.clientCompany,
            "scopeOfWork": data.scopeOfWork,
            "projectType": data.projectType or "Commercial",
            "projectComments": data.projectComments or "",
            "priority": data.priority or "Medium",
            "country": data.country or "Not Specified",
            "timeline": data.timeline or "Not Specified",
            "estimatedValue": data.estimatedValue,
            "clientContact": data.clientContact,
            "clientEmail": data.clientEmail,
            "clientPhone": data.clientPhone,
            "projectLinks": data.projectLinks,
            "status": ProposalStatus.PENDING_ESTIMATION.value,
            "createdByUid": user.uid,
            "createdByName": user.name,
            "createdByEmail": user.email,
            "createdAt": now,
            "updatedAt": now,
            "changeLog": [
                {
                    "timestamp": now,
                    "action": "created",
                    "performedByName": user.name,
                    "performedByUid": user.uid,
                    "details": "Proposal created",
                }
            ],
        }
        proposal_id = self.repo.create(self.store, proposal)

        log_activity(
            self.store,
            "proposal_created",
            f"New proposal created: {data.projectName} for {data.clientCompany}",
            user,
            proposalId=proposal_id,
            projectName=data.projectName,
            clientCompany=data.clientCompany,
        )
        notify_role(
            self.store,
            ESTIMATOR,
            "proposal_created",
            f"New proposal '{data.projectName}' for {data.clientCompany} needs estimation",
            proposalId=proposal_id,
        )
        dispatch_email(
            self.store,
            "proposal.created",
            {
                "proposalId": proposal_id,
                "projectName": data.projectName,
                "clientCompany": data.clientCompany,
                "createdBy": user.name,
                "createdByEmail": user.email,
            },
        )
        return {"id": proposal_id, **proposal}

    def delete_proposal(self, proposal_id: str, user: CurrentUser) -> dict:
        proposal = self.repo.get(self.store, proposal_id)
        if not proposal:
            raise HTTPException(status_code=404, detail="Proposal not found")
        if proposal.get("createdByUid") != user.uid and user.role != DIRECTOR:
            raise HTTPException(status_code=403, detail="You are not authorized to delete this proposal.")

        files = FileRepository.list_for_proposal(self.store, proposal_id)
        for f in files:
            if f.get("fileType") != "link" and f.get("fileName"):
                delete_blob(f["fileName"])
        FileRepository.delete_many(self.store, [f["id"] for f in files])

        self.repo.delete(self.store, proposal_id)
        log_activity(
            self.store,
            "proposal_deleted",
            f"Proposal deleted: {proposal.get('projectName')}",
            user,
            proposalId=proposal_id,
            projectName=proposal.get("projectName"),
        )
        logger.info(f"🗑️ Proposal {proposal_id} deleted with {len(files)} file(s)")
        return {"deletedFiles": len(files)}

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def apply_action(self, proposal_id: str, request: ActionRequest, user: CurrentUser) -> dict:
        """Run one lifecycle action; the update and its changeLog entry commit together"""
        action = parse_action(ProposalAction, request.action)
        handler = getattr(self, f"_{action.value}")

        def _transaction(txn) -> tuple[dict, Outcome]:
            proposal = txn.get("proposals", proposal_id)
            if not proposal:
                raise HTTPException(status_code=404, detail="Proposal not found")
            if user.role == BDM and proposal.get("createdByUid") != user.uid:
                raise HTTPException(status_code=403, detail="Access denied. You can only modify your own proposals.")

            payload = authorize_transition(PROPOSAL_TRANSITIONS, action, user, request.data)
            outcome = handler(txn, proposal, payload, user)

            now = utcnow()
            entry = {
                "timestamp": now,
                "action": action.value,
                "performedByName": user.name,
                "performedByUid": user.uid,
                "details": f"{action.value.replace('_', ' ')} completed",
            }
            updates = {
                **outcome.updates,
                "changeLog": list(proposal.get("changeLog") or []) + [entry],
                "updatedAt": now,
            }
            txn.update("proposals", proposal_id, updates)
            return proposal, outcome

        proposal, outcome = self.store.run_transaction(_transaction)
        logger.info(f"✅ Proposal {proposal_id}: {action.value} by {user.role} {user.uid}")

        for effect in outcome.effects:
            effect()
        log_activity(
            self.store,
            f"proposal_{action.value}",
            outcome.detail,
            user,
            proposalId=proposal_id,
            projectName=proposal.get("projectName"),
            clientCompany=proposal.get("clientCompany"),
        )
        return self.repo.get(self.store, proposal_id)

    # Each handler receives (txn, proposal, payload, user), may read through txn,
    # and must not write: apply_action performs the single update.

    def _update_details(self, txn, proposal, payload: UpdateDetailsData, user) -> Outcome:
        updates = payload.model_dump(exclude_none=True)
        return Outcome(updates, "Proposal details updated", [])

    def _add_links(self, txn, proposal, payload: AddLinksData, user) -> Outcome:
        links = list(proposal.get("projectLinks") or [])
        links.extend(link for link in payload.links if link not in links)
        return Outcome({"projectLinks": links}, f"{len(payload.links)} project link(s) added", [])

    def _add_estimation(self, txn, proposal, payload: EstimationData, user) -> Outcome:
        pid = proposal["id"]
        updates = {
            "estimation": {
                "manhours": payload.manhours,
                "boqUploaded": payload.boqUploaded,
                "estimatorName": user.name,
                "estimatorUid": user.uid,
                "estimatedAt": utcnow(),
                "notes": payload.notes,
            },
            "status": ProposalStatus.ESTIMATION_COMPLETE.value,
        }
        effects = [
            lambda: notify_role(
                self.store,
                COO,
                "estimation_complete",
                f"Estimation completed for {proposal.get('projectName')}",
                proposalId=pid,
            ),
            lambda: dispatch_email(
                self.store,
                "estimation.complete",
                {
                    "proposalId": pid,
                    "projectName": proposal.get("projectName"),
                    "manhours": payload.manhours,
                    "estimatorName": user.name,
                },
            ),
        ]
        return Outcome(updates, f"Estimation completed: {payload.manhours} manhours", effects)

    def _add_pricing(self, txn, proposal, payload: PricingData, user) -> Outcome:
        pid = proposal["id"]
        if self.repo.project_number_taken(txn, payload.projectNumber, pid):
            raise HTTPException(status_code=400, detail="This project number already exists.")

        updates = {
            "pricing": {
                **(proposal.get("pricing") or {}),
                "projectNumber": payload.projectNumber,
                "quoteValue": payload.quoteValue,
                "currency": payload.currency,
                "hourlyRate": payload.hourlyRate,
                "profitMargin": payload.profitMargin,
                "notes": payload.notes,
                "costBreakdown": payload.costBreakdown,
                "pricedBy": user.name,
                "pricedByUid": user.uid,
                "pricedAt": utcnow(),
            },
            "status": ProposalStatus.PENDING_APPROVAL.value,
        }
        name = proposal.get("projectName")
        effects = [
            lambda: notify_user(
                self.store,
                proposal.get("createdByUid"),
                BDM,
                "pricing_complete",
                f"Pricing ready for {name} - Project #{payload.projectNumber}.",
                proposalId=pid,
            ),
            lambda: notify_role(
                self.store,
                DIRECTOR,
                "pricing_complete_needs_approval",
                f"COO completed pricing for {name} - {payload.currency} {payload.quoteValue}. Awaiting your approval.",
                priority="high",
                proposalId=pid,
            ),
            lambda: dispatch_email(
                self.store,
                "pricing.complete",
                {
                    "proposalId": pid,
                    "projectName": name,
                    "projectNumber": payload.projectNumber,
                    "quoteValue": payload.quoteValue,
                },
            ),
        ]
        detail = f"Pricing added: {payload.currency} {payload.quoteValue} - Project Number: {payload.projectNumber}"
        return Outcome(updates, detail, effects)

    def _set_project_number(self, txn, proposal, payload: ProjectNumberData, user) -> Outcome:
        pid = proposal["id"]
        if self.repo.project_number_taken(txn, payload.projectNumber, pid):
            raise HTTPException(status_code=400, detail="This project number already exists.")

        updates = {
            "pricing.projectNumber": payload.projectNumber,
            "pricing.projectNumberStatus": "pending",
            "pricing.projectNumberEnteredBy": user.name,
            "pricing.projectNumberEnteredAt": utcnow(),
        }
        effects = [
            lambda: notify_role(
                self.store,
                DIRECTOR,
                "project_number_pending_approval",
                f"Project Number {payload.projectNumber} set by {user.name} for "
                f"\"{proposal.get('projectName')}\" - Requires your approval",
                priority="high",
                proposalId=pid,
            )
        ]
        return Outcome(updates, f"Project Number set to {payload.projectNumber} by {user.name}", effects)

    def _require_project_number(self, proposal) -> str:
        number = (proposal.get("pricing") or {}).get("projectNumber")
        if not number:
            raise HTTPException(status_code=400, detail="No project number to review")
        return number

    def _approve_project_number(self, txn, proposal, payload, user) -> Outcome:
        number = self._require_project_number(proposal)
        updates = {
            "pricing.projectNumberStatus": "approved",
            "pricing.projectNumberApprovedBy": user.name,
            "pricing.projectNumberApprovedAt": utcnow(),
        }
        effects = [
            lambda: notify_role(
                self.store,
                COO,
                "project_number_approved",
                f"Project Number {number} for \"{proposal.get('projectName')}\" has been approved by {user.name}",
                proposalId=proposal["id"],
            )
        ]
        return Outcome(updates, f"Project Number {number} approved by {user.name}", effects)

    def _reject_project_number(self, txn, proposal, payload: ReasonData, user) -> Outcome:
        number = self._require_project_number(proposal)
        reason = payload.reason or "No reason provided"
        updates = {
            "pricing.projectNumberStatus": "rejected",
            "pricing.projectNumberRejectionReason": reason,
        }
        effects = [
            lambda: notify_role(
                self.store,
                COO,
                "project_number_rejected",
                f"Project Number {number} for \"{proposal.get('projectName')}\" was rejected by {user.name}. "
                f"Reason: {reason}",
                priority="high",
                proposalId=proposal["id"],
            )
        ]
        return Outcome(updates, f"Project Number {number} rejected by {user.name}: {reason}", effects)

    def _approve_proposal(self, txn, proposal, payload: ApprovalData, user) -> Outcome:
        pid = proposal["id"]
        pricing = proposal.get("pricing") or {}
        updates = {
            "status": ProposalStatus.APPROVED.value,
            "directorApproval": {
                "approved": True,
                "approvedBy": user.name,
                "approvedByUid": user.uid,
                "approvedAt": utcnow(),
                "comments": payload.comments,
            },
        }
        effects = [
            lambda: dispatch_email(
                self.store,
                "project.approved_by_director",
                {
                    "proposalId": pid,
                    "projectName": proposal.get("projectName"),
                    "clientCompany": proposal.get("clientCompany"),
                    "approvedBy": user.name,
                    "estimatedValue": f"{pricing.get('currency', '')} {pricing.get('quoteValue', 'N/A')}".strip(),
                    "createdByEmail": proposal.get("createdByEmail"),
                },
            ),
            lambda: notify_user(
                self.store,
                proposal.get("createdByUid"),
                BDM,
                "proposal_approved",
                f"Your proposal \"{proposal.get('projectName')}\" has been approved by Director.",
                priority="high",
                proposalId=pid,
            ),
        ]
        return Outcome(updates, f"Proposal approved by Director {user.name}", effects)

    def _reject_proposal(self, txn, proposal, payload: ReasonData, user) -> Outcome:
        reason = payload.reason or "No reason provided"
        updates = {
            "status": ProposalStatus.REJECTED.value,
            "directorApproval": {
                "approved": False,
                "rejectedBy": user.name,
                "rejectedByUid": user.uid,
                "rejectedAt": utcnow(),
                "reason": reason,
                "comments": payload.comments,
            },
        }
        effects = [
            lambda: notify_user(
                self.store,
                proposal.get("createdByUid"),
                BDM,
                "proposal_rejected",
                f"Your proposal \"{proposal.get('projectName')}\" was rejected by Director. Reason: {reason}",
                priority="high",
                proposalId=proposal["id"],
            )
        ]
        return Outcome(updates, f"Proposal rejected by Director {user.name}: {reason}", effects)

    def _submit_to_client(self, txn, proposal, payload, user) -> Outcome:
        if proposal.get("createdByUid") != user.uid:
            raise HTTPException(status_code=403, detail="Only the BDM who created this proposal can submit it")
        if proposal.get("status") not in (ProposalStatus.PENDING_APPROVAL.value, ProposalStatus.APPROVED.value):
            raise HTTPException(
                status_code=400,
                detail="Proposal must have pricing complete or be approved by Director before submission",
            )
        updates = {"status": ProposalStatus.SUBMITTED_TO_CLIENT.value, "submittedAt": utcnow()}
        return Outcome(updates, "Proposal submitted to client", [])

    def _mark_won(self, txn, proposal, payload: WonData, user) -> Outcome:
        pid = proposal["id"]
        name = proposal.get("projectName")
        quote_value = (proposal.get("pricing") or {}).get("quoteValue")
        updates = {
            "status": ProposalStatus.WON.value,
            "wonDate": payload.wonDate or utcnow(),
            "projectCreated": False,
            "allocationStatus": "needs_allocation",
        }
        effects = [
            lambda: notify_role(
                self.store,
                COO,
                "proposal_won_needs_allocation",
                f"{name} marked as WON by {proposal.get('createdByName')} - Ready for allocation to Design Lead",
                priority="high",
                proposalId=pid,
            ),
            lambda: notify_role(
                self.store,
                DIRECTOR,
                "proposal_won_needs_allocation",
                f"{name} won by {proposal.get('createdByName')} - Value: {quote_value or 'N/A'}",
                priority="high",
                proposalId=pid,
            ),
            lambda: dispatch_email(
                self.store,
                "project.won",
                {
                    "proposalId": pid,
                    "projectName": name,
                    "clientCompany": proposal.get("clientCompany"),
                    "quoteValue": quote_value,
                },
            ),
        ]
        return Outcome(updates, "Proposal marked as WON", effects)

    def _mark_lost(self, txn, proposal, payload: LostData, user) -> Outcome:
        reason = payload.reason or "Not specified"
        updates = {
            "status": ProposalStatus.LOST.value,
            "lostDate": payload.lostDate or utcnow(),
            "lostReason": reason,
        }
        effects = [
            lambda: notify_role(
                self.store,
                DIRECTOR,
                "proposal_lost",
                f"{proposal.get('projectName')} marked as LOST by {user.name} - Reason: {reason}",
                proposalId=proposal["id"],
            )
        ]
        return Outcome(updates, f"Proposal marked as LOST: {reason}", effects)

    def _update_allocation_status(self, txn, proposal, payload: AllocationStatusData, user) -> Outcome:
        updates = {
            "allocationStatus": payload.allocationStatus,
            "designLeadName": payload.designLeadName,
            "designLeadUid": payload.designLeadUid,
            "allocatedAt": utcnow(),
            "allocatedBy": user.name,
            "allocatedByUid": user.uid,
        }
        return Outcome(updates, f"Allocation status set to {payload.allocationStatus}", [])
