"""Project domain schemas - Pydantic models for validation"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ProjectAction(str, Enum):
    ALLOCATE_TO_DESIGN_LEAD = "allocate_to_design_lead"
    ASSIGN_DESIGNERS = "assign_designers"
    MARK_COMPLETE = "mark_complete"


ACTION_ALIASES = {"allocate_design_lead": ProjectAction.ALLOCATE_TO_DESIGN_LEAD.value}


class ProjectCreateRequest(BaseModel):
    action: Optional[str] = None
    proposalId: Optional[str] = None


class AllocationData(BaseModel):
    """Checked field by field in the service so errors keep a stable order"""

    designLeadUid: Optional[str] = None
    allocationNotes: Optional[str] = None
    maxAllocatedHours: Optional[float] = None
    additionalHours: float = 0
    targetCompletionDate: Optional[Any] = None
    projectStartDate: Optional[Any] = None
    specialInstructions: str = ""
    priority: str = "Normal"


class AssignDesignersData(BaseModel):
    designerUids: list[str] = Field(default_factory=list)
    designerEmails: list[str] = Field(default_factory=list)
    designerHours: dict[str, float] = Field(default_factory=dict)
