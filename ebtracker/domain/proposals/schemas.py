"""Proposal domain schemas - Pydantic models for validation"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, field_validator


class ProposalStatus(str, Enum):
    PENDING_ESTIMATION = "pending_estimation"
    ESTIMATION_COMPLETE = "estimation_complete"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUBMITTED_TO_CLIENT = "submitted_to_client"
    WON = "won"
    LOST = "lost"


class ProposalAction(str, Enum):
    UPDATE_DETAILS = "update_details"
    ADD_LINKS = "add_links"
    ADD_ESTIMATION = "add_estimation"
    ADD_PRICING = "add_pricing"
    SET_PROJECT_NUMBER = "set_project_number"
    APPROVE_PROJECT_NUMBER = "approve_project_number"
    REJECT_PROJECT_NUMBER = "reject_project_number"
    APPROVE_PROPOSAL = "approve_proposal"
    REJECT_PROPOSAL = "reject_proposal"
    SUBMIT_TO_CLIENT = "submit_to_client"
    MARK_WON = "mark_won"
    MARK_LOST = "mark_lost"
    UPDATE_ALLOCATION_STATUS = "update_allocation_status"


def _required_text(v: Optional[str]) -> str:
    if v is None or not str(v).strip():
        raise ValueError("must not be empty")
    return str(v).strip()


class ProposalCreate(BaseModel):
    """Schema for creating a new proposal"""

    projectName: str
    clientCompany: str
    scopeOfWork: str
    projectType: Optional[Union[str, list[str]]] = None
    projectComments: Optional[str] = ""
    priority: Optional[str] = None
    country: Optional[str] = None
    timeline: Optional[str] = None
    estimatedValue: Optional[float] = None
    clientContact: Optional[str] = None
    clientEmail: Optional[str] = None
    clientPhone: Optional[str] = None
    projectLinks: list[Any] = Field(default_factory=list)

    @field_validator("projectName", "clientCompany", "scopeOfWork")
    @classmethod
    def validate_required(cls, v):
        return _required_text(v)


# ============================================================================
# ACTION PAYLOADS
# ============================================================================


class UpdateDetailsData(BaseModel):
    projectName: Optional[str] = None
    clientCompany: Optional[str] = None
    projectType: Optional[Union[str, list[str]]] = None
    timeline: Optional[str] = None
    country: Optional[str] = None
    priority: Optional[str] = None
    scopeOfWork: Optional[str] = None
    projectComments: Optional[str] = None
    estimatedValue: Optional[float] = None


class AddLinksData(BaseModel):
    links: list[Any] = Field(min_length=1)


class EstimationData(BaseModel):
    manhours: float = Field(gt=0)
    boqUploaded: bool = False
    notes: str = ""


class PricingData(BaseModel):
    projectNumber: str
    quoteValue: float = Field(gt=0)
    currency: str = "USD"
    hourlyRate: Optional[float] = None
    profitMargin: Optional[float] = None
    notes: str = ""
    costBreakdown: Optional[Any] = None

    @field_validator("projectNumber")
    @classmethod
    def validate_project_number(cls, v):
        return _required_text(v)


class ProjectNumberData(BaseModel):
    projectNumber: str

    @field_validator("projectNumber")
    @classmethod
    def validate_project_number(cls, v):
        return _required_text(v)


class ReasonData(BaseModel):
    reason: Optional[str] = None
    comments: str = ""


class ApprovalData(BaseModel):
    comments: str = ""


class WonData(BaseModel):
    wonDate: Optional[datetime] = None


class LostData(BaseModel):
    reason: Optional[str] = None
    lostDate: Optional[datetime] = None


class AllocationStatusData(BaseModel):
    allocationStatus: str = "allocated"
    designLeadName: Optional[str] = None
    designLeadUid: Optional[str] = None
