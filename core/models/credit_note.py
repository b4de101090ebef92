"""Credit note domain models.

Amounts are Decimal with two fractional digits (NUMERIC(14, 2) in storage).
Binary floats never touch money.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, model_validator

from core.models.customer import CustomerSnapshot


class CreditNoteStatus(str, Enum):
    """Credit note lifecycle status."""

    DRAFT = "draft"
    ISSUED = "issued"
    APPLIED = "applied"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (CreditNoteStatus.APPLIED, CreditNoteStatus.CANCELLED)


class CreditNoteCreate(BaseModel):
    """Data required to create a credit note (always starts as a draft)."""

    original_invoice_number: str = Field(..., min_length=1, max_length=50)
    customer_id: UUID | None = None
    customer_name: str | None = Field(None, max_length=255)
    customer_email: EmailStr | None = None
    customer_phone: str | None = Field(None, max_length=50)
    total_amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    reason: str | None = Field(None, max_length=2000)
    credit_note_date: date | None = None

    @model_validator(mode="after")
    def require_customer(self) -> "CreditNoteCreate":
        """Either a directory customer or an explicit name is needed."""
        if self.customer_id is None and not self.customer_name:
            raise ValueError("Either customer_id or customer_name is required")
        return self


class CreditNoteUpdate(BaseModel):
    """Fields editable while a credit note is a draft. All optional."""

    original_invoice_number: str | None = Field(None, min_length=1, max_length=50)
    customer_name: str | None = Field(None, min_length=1, max_length=255)
    customer_email: EmailStr | None = None
    customer_phone: str | None = Field(None, max_length=50)
    total_amount: Decimal | None = Field(None, gt=0, max_digits=14, decimal_places=2)
    reason: str | None = Field(None, max_length=2000)
    credit_note_date: date | None = None


class CreditNoteStatusChange(BaseModel):
    """Body of a status change request."""

    status: CreditNoteStatus


class CreditNote(BaseModel):
    """Full credit note entity as stored."""

    id: UUID
    company_id: UUID
    credit_note_number: str | None
    original_invoice_number: str
    customer_id: UUID | None
    customer: CustomerSnapshot
    total_amount: Decimal
    reason: str | None
    credit_note_date: date
    status: CreditNoteStatus
    version: int
    issued_at: datetime | None = None
    applied_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    model_config = {"from_attributes": True}

    @model_validator(mode="before")
    @classmethod
    def fold_customer_columns(cls, data: Any) -> Any:
        """Rows store the snapshot as flat customer_* columns."""
        if isinstance(data, dict) and "customer" not in data:
            data = dict(data)
            data["customer"] = {
                "name": data.pop("customer_name", None),
                "email": data.pop("customer_email", None),
                "phone": data.pop("customer_phone", None),
            }
        return data

    @property
    def is_editable(self) -> bool:
        return self.status == CreditNoteStatus.DRAFT


class StatusBreakdown(BaseModel):
    status: CreditNoteStatus
    count: int
    total_amount: Decimal


class CreditNoteStats(BaseModel):
    """Counts and amounts for credit notes in a date range."""

    total_credit_notes: int
    total_amount: Decimal
    status_breakdown: list[StatusBreakdown]
