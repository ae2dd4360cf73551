"""Proposal router - FastAPI endpoints for the proposal lifecycle"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ...auth import CurrentUser, get_current_user
from ...database import get_store
from ...shared.transitions import ActionRequest
from .schemas import ProposalCreate
from .service import ProposalService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/proposals", tags=["Proposals"])

__all__ = ["router"]


def get_proposal_service(store=Depends(get_store)) -> ProposalService:
    """Dependency injection for ProposalService"""
    return ProposalService(store)


def _require_id(proposal_id: Optional[str]) -> str:
    if not proposal_id:
        raise HTTPException(status_code=400, detail="Proposal ID is required")
    return proposal_id


@router.get("")
async def get_proposals(
    id: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: ProposalService = Depends(get_proposal_service),
):
    """One proposal by id, or the proposals visible to the caller's role"""
    if id:
        return {"success": True, "data": service.get_proposal(id, current_user)}
    return {"success": True, "data": service.list_proposals(current_user)}


@router.post("", status_code=201)
async def create_proposal(
    data: ProposalCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: ProposalService = Depends(get_proposal_service),
):
    proposal = service.create_proposal(data, current_user)
    return {"success": True, "data": proposal, "message": "Proposal created successfully"}


@router.put("")
async def update_proposal(
    request: ActionRequest,
    id: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: ProposalService = Depends(get_proposal_service),
):
    """Apply one lifecycle action: {action, data}"""
    proposal = service.apply_action(_require_id(id), request, current_user)
    return {"success": True, "data": proposal, "message": f"Proposal {request.action} completed"}


@router.delete("")
async def delete_proposal(
    id: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: ProposalService = Depends(get_proposal_service),
):
    result = service.delete_proposal(_require_id(id), current_user)
    return {"success": True, "data": result, "message": "Proposal deleted successfully"}
