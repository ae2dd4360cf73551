"""User domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.roles import USER_STATUSES
from ...shared.validators import validate_email, validate_role


class UserCreate(BaseModel):
    email: str
    password: str = Field(min_length=6)
    name: str
    role: str
    department: str = ""

    @field_validator("email")
    @classmethod
    def validate_email_format(cls, v):
        return validate_email(v)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Name is required")
        return v.strip()

    @field_validator("role")
    @classmethod
    def validate_user_role(cls, v):
        return validate_role(v)


class UserUpdate(BaseModel):
    status: Optional[str] = None
    role: Optional[str] = None
    department: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in USER_STATUSES:
            raise ValueError("Invalid status. Must be: active, inactive, or suspended")
        return v

    @field_validator("role")
    @classmethod
    def validate_user_role(cls, v):
        return validate_role(v)
