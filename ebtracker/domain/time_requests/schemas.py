"""Time request domain schemas - Pydantic models for validation"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class TimeRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    INFO_REQUESTED = "info_requested"


class TimeRequestAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    REQUEST_INFO = "request_info"


DELETABLE_STATUSES = (
    TimeRequestStatus.PENDING.value,
    TimeRequestStatus.REJECTED.value,
    TimeRequestStatus.INFO_REQUESTED.value,
)


class PendingTimesheet(BaseModel):
    """The timesheet entry that was blocked by the budget check"""

    date: str
    hours: float = Field(gt=0)
    description: str = ""


class TimeRequestCreate(BaseModel):
    projectId: str
    requestedHours: float = Field(gt=0)
    reason: str
    attachmentUrl: Optional[str] = None
    pendingTimesheetData: Optional[PendingTimesheet] = None

    @field_validator("projectId", "reason")
    @classmethod
    def validate_required(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()


class ReviewData(BaseModel):
    approvedHours: Optional[float] = None
    comment: Optional[str] = None
    applyToTimesheet: bool = False
