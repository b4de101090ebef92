"""Analytics snapshot models.

A snapshot is derived data: recomputed wholesale from the ledger and the
sales/purchase/expense collaborators for one tenant and one period, never
edited in place.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from core.models.payment import PaymentMethod, PaymentType


class Period(BaseModel):
    """Resolved, inclusive reporting window."""

    label: str = Field(..., description="Named period or 'custom'")
    start_date: date
    end_date: date

    model_config = {"frozen": True}

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days + 1


class MethodTotal(BaseModel):
    method: PaymentMethod
    total: Decimal
    count: int


class TypeTotal(BaseModel):
    payment_type: PaymentType
    total: Decimal
    count: int


class DailyTotal(BaseModel):
    day: date
    total: Decimal
    count: int


class DailyFlow(BaseModel):
    day: date
    received: Decimal
    paid: Decimal


class ProductRank(BaseModel):
    product: str
    total_quantity: Decimal
    total_amount: Decimal
    count: int


class CustomerRank(BaseModel):
    customer: str
    total_amount: Decimal
    invoice_count: int
    avg_order_value: Decimal


class RealizedCredit(BaseModel):
    """Credit notes applied within the period."""

    total: Decimal
    count: int


class SectionWarning(BaseModel):
    """A section that could not be computed because its source failed."""

    section: str
    code: str
    message: str


class Overview(BaseModel):
    total_sales: Decimal
    total_purchases: Decimal
    total_expenses: Decimal
    payment_methods: list[MethodTotal]
    sales_by_date: list[DailyTotal]
    realized_credit: RealizedCredit
    warnings: list[SectionWarning] = []


class PaymentAnalytics(BaseModel):
    payment_flow: list[TypeTotal]
    payment_methods: list[MethodTotal]
    daily_payments: list[DailyFlow]
    warnings: list[SectionWarning] = []


class AnalyticsSnapshot(BaseModel):
    """All period rollups for one tenant, as published."""

    company_id: UUID
    period: Period
    currency: str
    computed_at: datetime
    total_sales: Decimal
    total_purchases: Decimal
    total_expenses: Decimal
    payment_methods: list[MethodTotal]
    payment_flow: list[TypeTotal]
    sales_by_date: list[DailyTotal]
    daily_payments: list[DailyFlow]
    top_products: list[ProductRank]
    top_customers: list[CustomerRank]
    realized_credit: RealizedCredit
    warnings: list[SectionWarning]

    def aggregate_values(self) -> dict[str, Any]:
        """Everything except publication metadata; equal for equal inputs."""
        return self.model_dump(mode="json", exclude={"computed_at"})

    def warnings_for(self, *sections: str) -> list[SectionWarning]:
        return [w for w in self.warnings if w.section in sections]


class TopProducts(BaseModel):
    products: list[ProductRank]
    warnings: list[SectionWarning] = []


class TopCustomers(BaseModel):
    customers: list[CustomerRank]
    warnings: list[SectionWarning] = []
