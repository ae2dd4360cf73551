"""Variation domain schemas - Pydantic models for validation"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class VariationStatus(str, Enum):
    PENDING_COO_APPROVAL = "pending_coo_approval"
    APPROVED = "approved"
    REJECTED = "rejected"


class VariationAction(str, Enum):
    REVIEW_VARIATION = "review_variation"


class VariationCreate(BaseModel):
    parentProjectId: str
    variationCode: str
    estimatedHours: float = Field(gt=0)
    scopeDescription: str

    @field_validator("parentProjectId", "variationCode", "scopeDescription")
    @classmethod
    def validate_required(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()


class ReviewVariationData(BaseModel):
    status: VariationStatus
    notes: str = ""
    approvedHours: Optional[float] = None

    @field_validator("status")
    @classmethod
    def validate_decision(cls, v):
        if v == VariationStatus.PENDING_COO_APPROVAL:
            raise ValueError('Must be "approved" or "rejected"')
        return v
