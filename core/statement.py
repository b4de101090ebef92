"""
Customer statement construction and tabular export.

A statement lists a customer's completed payments inside a window with a
running balance. The opening balance is the signed sum of every completed
payment dated before the window, so the closing balance always equals the
signed sum of all completed payments up to the window's end.
"""

import csv
import io
from datetime import date
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from core.analytics import money, ZERO
from core.models import Payment, PaymentStatus, Statement, StatementRow

STATEMENT_COLUMNS = [
    ("payment_date", "Date"),
    ("payment_number", "Payment No."),
    ("reference_number", "Reference"),
    ("payment_method", "Method"),
    ("payment_type", "Type"),
    ("description", "Description"),
    ("amount", "Amount"),
    ("balance", "Balance"),
]


def _counts(payment: Payment) -> bool:
    return payment.status == PaymentStatus.COMPLETED and payment.deleted_at is None


def build_statement(
    customer_id: UUID,
    customer_name: str,
    payments: Iterable[Payment],
    start_date: date | None = None,
    end_date: date | None = None,
) -> Statement:
    """
    Build a running statement from a customer's payments.

    ``payments`` may include any status and dates outside the window; only
    completed ones count, those before ``start_date`` fold into the opening
    balance and those after ``end_date`` are ignored.
    """
    counted = sorted(
        (p for p in payments if _counts(p)),
        key=lambda p: (p.payment_date, p.created_at, p.id),
    )

    opening = ZERO
    rows: list[StatementRow] = []
    balance = ZERO

    for payment in counted:
        if start_date and payment.payment_date < start_date:
            opening += payment.signed_amount
            continue
        if end_date and payment.payment_date > end_date:
            break
        if not rows:
            balance = opening
        balance += payment.signed_amount
        rows.append(StatementRow(
            payment_date=payment.payment_date,
            payment_number=payment.payment_number,
            reference_number=payment.reference_number,
            payment_method=payment.payment_method,
            payment_type=payment.payment_type,
            description=payment.description,
            amount=money(payment.amount),
            signed_amount=money(payment.signed_amount),
            balance=money(balance),
        ))

    opening = money(opening)
    return Statement(
        customer_id=customer_id,
        customer_name=customer_name,
        start_date=start_date,
        end_date=end_date,
        opening_balance=opening,
        rows=rows,
        closing_balance=rows[-1].balance if rows else opening,
    )


def _cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, Decimal):
        return f"{value:.2f}"
    if hasattr(value, "value"):
        return str(value.value)
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def export_statement_csv(statement: Statement) -> str:
    """Render a statement as CSV: opening row, one row per payment, closing row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    writer.writerow(["Customer", statement.customer_name])
    writer.writerow(["From", _cell(statement.start_date), "To", _cell(statement.end_date)])
    writer.writerow([header for _, header in STATEMENT_COLUMNS])
    writer.writerow(["", "", "", "", "", "Opening balance", "", _cell(statement.opening_balance)])

    for row in statement.rows:
        data = row.model_dump()
        data["amount"] = row.signed_amount
        writer.writerow([_cell(data[key]) for key, _ in STATEMENT_COLUMNS])

    writer.writerow(["", "", "", "", "", "Closing balance", "", _cell(statement.closing_balance)])
    return buffer.getvalue()
