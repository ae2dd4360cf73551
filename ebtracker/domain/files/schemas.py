"""File domain schemas - Pydantic models for validation"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class FileType(str, Enum):
    PROJECT = "project"
    ESTIMATION = "estimation"
    LINK = "link"


class LinkItem(BaseModel):
    url: str
    title: Optional[str] = None
    description: Optional[str] = None

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        if not v or not v.strip():
            raise ValueError("URL is required")
        return v.strip()


class LinkUpload(BaseModel):
    links: list[LinkItem] = Field(min_length=1)
    proposalId: Optional[str] = None
