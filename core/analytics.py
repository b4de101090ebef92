"""
Period rollups over ledger and collaborator records.

Everything here is a pure function of its inputs: no clock, no database, no
dict-ordering dependence. Sorting always ends on a unique key so equal
inputs give equal outputs, and all arithmetic is Decimal.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable
from uuid import UUID

from core.models import (
    AmountRecord, AnalyticsSnapshot, CreditNote, CustomerRank, DailyFlow, DailyTotal,
    MethodTotal, Payment, PaymentStatus, PaymentType, Period, ProductRank,
    RealizedCredit, SaleLine, SaleRecord, SectionWarning, TypeTotal,
)
from core.periods import iter_days

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")

# Section names used in warnings and by the read endpoints
SALES = "sales"
PURCHASES = "purchases"
EXPENSES = "expenses"
PRODUCTS = "top_products"
PAYMENTS = "payments"


def money(value: Decimal | int) -> Decimal:
    """Quantize to the minor unit."""
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def total(amounts: Iterable[Decimal]) -> Decimal:
    return money(sum(amounts, ZERO))


def _completed(payments: Iterable[Payment]) -> list[Payment]:
    return [p for p in payments if p.status == PaymentStatus.COMPLETED and p.deleted_at is None]


def payment_method_totals(payments: Iterable[Payment]) -> list[MethodTotal]:
    """Completed payments grouped by method; largest total first, then method name."""
    totals: dict = defaultdict(lambda: [ZERO, 0])
    for payment in _completed(payments):
        bucket = totals[payment.payment_method]
        bucket[0] += payment.amount
        bucket[1] += 1

    rows = [MethodTotal(method=method, total=money(t), count=c) for method, (t, c) in totals.items()]
    return sorted(rows, key=lambda r: (-r.total, r.method.value))


def payment_flow(payments: Iterable[Payment]) -> list[TypeTotal]:
    """Completed payments grouped by direction (Received / Paid)."""
    totals: dict = defaultdict(lambda: [ZERO, 0])
    for payment in _completed(payments):
        bucket = totals[payment.payment_type]
        bucket[0] += payment.amount
        bucket[1] += 1

    rows = [TypeTotal(payment_type=kind, total=money(t), count=c) for kind, (t, c) in totals.items()]
    return sorted(rows, key=lambda r: (-r.total, r.payment_type.value))


def sales_by_date(sales: Iterable[SaleRecord]) -> list[DailyTotal]:
    """Sales per calendar day, ascending, days without sales omitted."""
    totals: dict[date, list] = defaultdict(lambda: [ZERO, 0])
    for sale in sales:
        bucket = totals[sale.sale_date]
        bucket[0] += sale.total_amount
        bucket[1] += 1
    return [DailyTotal(day=day, total=money(t), count=c) for day, (t, c) in sorted(totals.items())]


def daily_payments(payments: Iterable[Payment]) -> list[DailyFlow]:
    """Completed received/paid totals per day, ascending, sparse."""
    flows: dict[date, list] = defaultdict(lambda: [ZERO, ZERO])
    for payment in _completed(payments):
        index = 0 if payment.payment_type == PaymentType.RECEIVED else 1
        flows[payment.payment_date][index] += payment.amount
    return [
        DailyFlow(day=day, received=money(r), paid=money(p))
        for day, (r, p) in sorted(flows.items())
    ]


def densify_sales(series: list[DailyTotal], period: Period) -> list[DailyTotal]:
    """Zero-fill a sparse daily series over every day of the period."""
    by_day = {row.day: row for row in series}
    return [by_day.get(day) or DailyTotal(day=day, total=ZERO, count=0) for day in iter_days(period)]


def densify_flows(series: list[DailyFlow], period: Period) -> list[DailyFlow]:
    by_day = {row.day: row for row in series}
    return [by_day.get(day) or DailyFlow(day=day, received=ZERO, paid=ZERO) for day in iter_days(period)]


def top_products(lines: Iterable[SaleLine], limit: int | None = None) -> list[ProductRank]:
    """Products ranked by sales amount; ties by product name."""
    totals: dict[str, list] = defaultdict(lambda: [ZERO, ZERO, 0])
    for line in lines:
        bucket = totals[line.product_name]
        bucket[0] += line.quantity
        bucket[1] += line.amount
        bucket[2] += 1

    rows = [
        ProductRank(product=name, total_quantity=q, total_amount=money(a), count=c)
        for name, (q, a, c) in totals.items()
    ]
    rows.sort(key=lambda r: (-r.total_amount, r.product))
    return rows[:limit] if limit is not None else rows


def top_customers(sales: Iterable[SaleRecord], limit: int | None = None) -> list[CustomerRank]:
    """Customers ranked by invoiced amount; ties by customer name."""
    totals: dict[str, list] = defaultdict(lambda: [ZERO, 0])
    for sale in sales:
        bucket = totals[sale.customer_name]
        bucket[0] += sale.total_amount
        bucket[1] += 1

    rows = [
        CustomerRank(
            customer=name,
            total_amount=money(t),
            invoice_count=c,
            avg_order_value=money(t / c),
        )
        for name, (t, c) in totals.items()
    ]
    rows.sort(key=lambda r: (-r.total_amount, r.customer))
    return rows[:limit] if limit is not None else rows


def realized_credit(applied_notes: Iterable[CreditNote]) -> RealizedCredit:
    notes = list(applied_notes)
    return RealizedCredit(total=total(n.total_amount for n in notes), count=len(notes))


@dataclass
class SnapshotInputs:
    """
    Everything a snapshot is computed from.

    A collaborator section is None when its source failed; the matching
    warning explains why and the section reports zero/empty.
    """

    company_id: UUID
    period: Period
    currency: str
    payments: list[Payment]
    applied_notes: list[CreditNote]
    sales: list[SaleRecord] | None = None
    sale_lines: list[SaleLine] | None = None
    purchases: list[AmountRecord] | None = None
    expenses: list[AmountRecord] | None = None
    warnings: list[SectionWarning] = field(default_factory=list)


def build_snapshot(inputs: SnapshotInputs, computed_at: datetime) -> AnalyticsSnapshot:
    """Compute every rollup for one tenant and period."""
    sales = inputs.sales or []
    lines = inputs.sale_lines or []

    return AnalyticsSnapshot(
        company_id=inputs.company_id,
        period=inputs.period,
        currency=inputs.currency,
        computed_at=computed_at,
        total_sales=total(s.total_amount for s in sales),
        total_purchases=total(r.amount for r in inputs.purchases or []),
        total_expenses=total(r.amount for r in inputs.expenses or []),
        payment_methods=payment_method_totals(inputs.payments),
        payment_flow=payment_flow(inputs.payments),
        sales_by_date=sales_by_date(sales),
        daily_payments=daily_payments(inputs.payments),
        top_products=top_products(lines),
        top_customers=top_customers(sales),
        realized_credit=realized_credit(inputs.applied_notes),
        warnings=sorted(inputs.warnings, key=lambda w: (w.section, w.code)),
    )
