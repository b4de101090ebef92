"""Customer statement models."""

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel

from core.models.payment import PaymentMethod, PaymentType


class StatementRow(BaseModel):
    """One completed payment with the balance after it."""

    payment_date: date
    payment_number: str
    reference_number: str | None
    payment_method: PaymentMethod
    payment_type: PaymentType
    description: str | None
    amount: Decimal
    signed_amount: Decimal
    balance: Decimal


class Statement(BaseModel):
    """Running statement for one customer over a date window."""

    customer_id: UUID
    customer_name: str
    start_date: date | None
    end_date: date | None
    opening_balance: Decimal
    rows: list[StatementRow]
    closing_balance: Decimal
