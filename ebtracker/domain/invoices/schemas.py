"""Invoice domain schemas - Pydantic models for validation"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import to_utc


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"


class InvoiceCreate(BaseModel):
    projectId: str
    invoiceNumber: str
    invoiceAmount: float = Field(gt=0)
    dueDate: datetime
    currency: Optional[str] = None
    paymentTerms: str = "Net 30"
    description: str = ""
    milestone: str = ""
    items: list[Any] = Field(default_factory=list)
    notes: str = ""

    @field_validator("projectId", "invoiceNumber")
    @classmethod
    def validate_required(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("dueDate")
    @classmethod
    def validate_due_date(cls, v):
        return to_utc(v)


class InvoiceUpdate(BaseModel):
    """Fields a PUT may merge; sendReminder is a trigger and is never stored"""

    invoiceNumber: Optional[str] = None
    invoiceAmount: Optional[float] = Field(default=None, gt=0)
    dueDate: Optional[datetime] = None
    paymentTerms: Optional[str] = None
    description: Optional[str] = None
    milestone: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[InvoiceStatus] = None
    paidAmount: Optional[float] = None
    sendReminder: bool = False
