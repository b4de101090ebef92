"""Payment domain models.

A payment moves money between the tenant and one customer. Its sign in the
customer's running balance comes from its type: Received adds, Paid
subtracts. Only completed payments count toward balances.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class PaymentMethod(str, Enum):
    """How the money moved."""

    CASH = "Cash"
    UPI = "UPI"
    BANK_TRANSFER = "Bank Transfer"
    CARD = "Card"
    CHEQUE = "Cheque"
    NET_BANKING = "Net Banking"


class PaymentType(str, Enum):
    """Direction of the payment from the tenant's point of view."""

    RECEIVED = "Received"
    PAID = "Paid"

    @property
    def sign(self) -> int:
        return 1 if self == PaymentType.RECEIVED else -1


class PaymentStatus(str, Enum):
    """Payment lifecycle status."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self != PaymentStatus.PENDING


class PaymentCreate(BaseModel):
    """Data required to record a payment."""

    customer_id: UUID
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    payment_method: PaymentMethod
    payment_type: PaymentType
    payment_date: date | None = None
    reference_number: str | None = Field(None, max_length=100)
    description: str | None = Field(None, max_length=2000)
    status: PaymentStatus = PaymentStatus.PENDING

    @field_validator("status")
    @classmethod
    def initial_status(cls, value: PaymentStatus) -> PaymentStatus:
        """A payment starts pending, or completed when settlement is immediate."""
        if value not in (PaymentStatus.PENDING, PaymentStatus.COMPLETED):
            raise ValueError("Initial status must be 'pending' or 'completed'")
        return value


class Payment(BaseModel):
    """Full payment entity as stored."""

    id: UUID
    company_id: UUID
    payment_number: str
    reference_number: str | None
    customer_id: UUID
    customer_name: str
    amount: Decimal
    payment_date: date
    payment_method: PaymentMethod
    payment_type: PaymentType
    status: PaymentStatus
    description: str | None
    version: int
    settled_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    model_config = {"from_attributes": True}

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the ledger sign applied (Received +, Paid -)."""
        return self.amount * self.payment_type.sign

    @property
    def counts_toward_balance(self) -> bool:
        return self.status == PaymentStatus.COMPLETED and self.deleted_at is None


class PaymentStats(BaseModel):
    """Totals and counts for payments in a date range."""

    total_received: Decimal
    total_paid: Decimal
    total_payments: int
    pending_payments: int
    completed_payments: int
    failed_payments: int
    cancelled_payments: int
