"""Timesheet domain schemas - Pydantic models for validation"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import to_utc


class TimesheetCreate(BaseModel):
    projectId: str
    date: datetime
    hours: float = Field(gt=0)
    description: str

    @field_validator("projectId", "description")
    @classmethod
    def validate_required(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        return to_utc(v)
