"""Task domain schemas - Pydantic models for validation"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, field_validator, model_validator


class TaskStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    REVISION_REQUIRED = "revision_required"
    APPROVED = "approved"


class TaskAction(str, Enum):
    UPDATE_STATUS = "update_status"
    APPROVE = "approve"
    REQUEST_REVISION = "request_revision"
    ADD_COMMENT = "add_comment"


# Statuses a designer may move their own task to
DESIGNER_STATUSES = (TaskStatus.IN_PROGRESS, TaskStatus.SUBMITTED)


class TaskCreate(BaseModel):
    projectId: str
    taskDescription: str
    designerUid: Optional[str] = None
    designerName: Optional[str] = None
    drawingType: str = "General"
    drawingNumber: Optional[str] = None
    priority: str = "Normal"
    startDate: Optional[Any] = None
    dueDate: Optional[Any] = None

    @field_validator("projectId", "taskDescription")
    @classmethod
    def validate_required(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @model_validator(mode="after")
    def validate_designer(self):
        if not self.designerUid and not self.designerName:
            raise ValueError("designerUid or designerName is required")
        return self


class UpdateStatusData(BaseModel):
    status: TaskStatus
    fileUrl: str = ""

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in DESIGNER_STATUSES:
            raise ValueError('Must be "in_progress" or "submitted"')
        return v


class CommentData(BaseModel):
    comment: str

    @field_validator("comment")
    @classmethod
    def validate_comment(cls, v):
        if not v or not v.strip():
            raise ValueError("Comment is required")
        return v.strip()
