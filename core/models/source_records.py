"""Rows read from the read-only collaborators (sales, purchases, expenses).

The ledger never writes these; they arrive already filtered by tenant and
date range.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel


class SaleRecord(BaseModel):
    """One sales invoice."""

    invoice_number: str
    sale_date: date
    customer_name: str
    total_amount: Decimal


class SaleLine(BaseModel):
    """One product line on a sales invoice."""

    invoice_number: str
    sale_date: date
    product_name: str
    quantity: Decimal
    amount: Decimal


class AmountRecord(BaseModel):
    """A dated amount from the purchase or expense ledgers."""

    record_date: date
    amount: Decimal
    category: str | None = None
