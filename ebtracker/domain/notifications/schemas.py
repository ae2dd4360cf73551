"""Notification domain schemas - Pydantic models for validation"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ...shared.validators import validate_role

Priority = Literal["low", "normal", "high", "urgent"]


class NotificationCreate(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    recipientRole: str
    message: str
    recipientUid: Optional[str] = None
    priority: Priority = "normal"
    projectId: Optional[str] = None
    proposalId: Optional[str] = None

    @field_validator("type", "message")
    @classmethod
    def validate_required(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("recipientRole")
    @classmethod
    def validate_recipient_role(cls, v):
        return validate_role(v)


class NotificationUpdate(BaseModel):
    isRead: Optional[bool] = None
    markAllRead: bool = False
