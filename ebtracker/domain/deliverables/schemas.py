"""Deliverable domain schemas - Pydantic models for validation"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ReviewStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REVISION_REQUIRED = "revision_required"


class DeliverableAction(str, Enum):
    REVIEW = "review"


ALLOWED_EXTENSIONS = {".pdf", ".jpg", ".jpeg", ".png", ".tiff", ".dwg", ".dxf", ".zip"}


class DeliverableLink(BaseModel):
    url: str
    title: Optional[str] = None
    description: Optional[str] = None

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        if not v or not v.strip():
            raise ValueError("URL is required")
        return v.strip()


class LinkDeliverableCreate(BaseModel):
    projectId: str
    links: list[DeliverableLink] = Field(min_length=1)
    taskId: Optional[str] = None
    description: str = ""
    versionNumber: str = "1.0"


class ReviewData(BaseModel):
    reviewStatus: ReviewStatus
    comments: str = ""

    @field_validator("reviewStatus")
    @classmethod
    def validate_review_status(cls, v):
        if v == ReviewStatus.PENDING:
            raise ValueError('Must be "approved" or "revision_required"')
        return v
