"""Submission domain schemas - Pydantic models for validation"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class ClientFeedback(str, Enum):
    PENDING = "pending"
    REVISION_REQUIRED = "revision_required"
    APPROVED = "approved"
    REJECTED = "rejected"


class SubmissionAction(str, Enum):
    CLIENT_FEEDBACK = "client_feedback"
    REVISED_SUBMISSION = "revised_submission"


class SubmissionCreate(BaseModel):
    projectId: str
    description: str
    submissionType: str = "Design Submission"
    submissionDate: Optional[Any] = None
    submittedTo: Optional[str] = None
    submissionMethod: str = "Email"
    drawingNumbers: list[str] = Field(default_factory=list)
    documentTypes: list[str] = Field(default_factory=list)
    fileUrls: list[str] = Field(default_factory=list)
    submissionProofUrl: str = ""

    @field_validator("projectId", "description")
    @classmethod
    def validate_required(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()


class ClientFeedbackData(BaseModel):
    feedback: ClientFeedback
    notes: str = ""

    @field_validator("feedback")
    @classmethod
    def validate_feedback(cls, v):
        if v == ClientFeedback.PENDING:
            raise ValueError('Must be "approved", "revision_required" or "rejected"')
        return v


class RevisedSubmissionData(BaseModel):
    proofUrl: Optional[str] = None
    fileUrls: Optional[list[str]] = None
    notes: str = ""
