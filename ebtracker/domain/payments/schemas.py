"""Payment domain schemas - Pydantic models for validation"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import to_utc


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PARTIALLY_PAID = "partially_paid"
    FULLY_PAID = "fully_paid"
    DELAYED = "delayed"


class PaymentAction(str, Enum):
    RECORD_PAYMENT = "record_payment"
    MARK_DELAYED = "mark_delayed"
    UPDATE_INVOICE = "update_invoice"


# Project-level value set when a payment record is first raised
INVOICE_GENERATED = "invoice_generated"


class PaymentCreate(BaseModel):
    projectId: str
    invoiceNumber: str
    invoiceAmount: float = Field(gt=0)
    dueDate: datetime
    invoiceDate: Optional[datetime] = None
    currency: Optional[str] = None
    paymentTerms: Optional[str] = None
    milestoneDescription: str = ""

    @field_validator("projectId", "invoiceNumber")
    @classmethod
    def validate_required(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("dueDate", "invoiceDate")
    @classmethod
    def validate_dates(cls, v):
        return to_utc(v)


class RecordPaymentData(BaseModel):
    amount: float = Field(gt=0)
    paymentDate: Optional[datetime] = None
    reference: Optional[str] = None
    proofUrl: Optional[str] = None


class MarkDelayedData(BaseModel):
    remarks: str = "Payment delayed"


class UpdateInvoiceData(BaseModel):
    invoiceNumber: Optional[str] = None
    invoiceAmount: Optional[float] = Field(default=None, gt=0)
    dueDate: Optional[datetime] = None
    invoiceUrl: Optional[str] = None
