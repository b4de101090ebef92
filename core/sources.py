"""
Read-only collaborators: customer directory, invoices, sales, purchases, expenses.

These tables belong to other parts of the product; the ledger only queries
them, always by tenant and (for the analytics feeds) by date range. A
database failure inside a collaborator query is reported as
UpstreamUnavailable so analytics can degrade one section instead of failing
the whole dashboard.
"""

import logging
from decimal import Decimal
from typing import Any
from uuid import UUID

import psycopg2

from clients.postgres_client import PostgresClient, Transaction
from core.exceptions import UpstreamUnavailable
from core.models import AmountRecord, Customer, Period, SaleLine, SaleRecord
from core.query import escape_like
from utils.tenant_context import get_current_company_id

logger = logging.getLogger(__name__)


class _Source:
    """Shared error translation for collaborator reads."""

    name = "source"

    def _read(self, executor: PostgresClient | Transaction, query: str, params: tuple) -> list[dict[str, Any]]:
        try:
            return executor.execute(query, params)
        except psycopg2.Error as e:
            logger.warning("%s source query failed: %s", self.name, e)
            raise UpstreamUnavailable(self.name, str(e).strip() or e.__class__.__name__) from e


class CustomerDirectory(_Source):
    """Customer records, read for snapshots, statements and the pass-through list."""

    name = "customers"

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def get(self, customer_id: UUID) -> Customer | None:
        """Customer of the current tenant, or None (also for other tenants' ids)."""
        rows = self._read(
            self.postgres,
            """
            SELECT id, company_id, name, email, phone, address
            FROM customers
            WHERE id = %s AND company_id = %s AND deleted_at IS NULL
            """,
            (customer_id, get_current_company_id())
        )
        return Customer.model_validate(rows[0]) if rows else None

    def list_all(self, search: str | None = None, limit: int = 500) -> list[Customer]:
        """Customers of the current tenant ordered by name."""
        company_id = get_current_company_id()
        if search and search.strip():
            pattern = f"%{escape_like(search.strip())}%"
            rows = self._read(
                self.postgres,
                """
                SELECT id, company_id, name, email, phone, address
                FROM customers
                WHERE company_id = %s AND deleted_at IS NULL
                  AND (name ILIKE %s OR email ILIKE %s OR phone ILIKE %s)
                ORDER BY name ASC, id ASC
                LIMIT %s
                """,
                (company_id, pattern, pattern, pattern, limit)
            )
        else:
            rows = self._read(
                self.postgres,
                """
                SELECT id, company_id, name, email, phone, address
                FROM customers
                WHERE company_id = %s AND deleted_at IS NULL
                ORDER BY name ASC, id ASC
                LIMIT %s
                """,
                (company_id, limit)
            )
        return [Customer.model_validate(row) for row in rows]


class InvoiceDirectory(_Source):
    """Sales invoice headers, read to validate credit note linkage."""

    name = "invoices"

    def lock_total(self, tx: Transaction, invoice_number: str) -> Decimal | None:
        """
        Invoice total for the current tenant, row-locked until ``tx`` ends.

        Credit note writers against the same invoice queue on the lock, so
        each one sums the open credit after the previous one committed.

        Returns:
            The total, or None if no such invoice.
        """
        rows = self._read(
            tx,
            """
            SELECT total_amount FROM invoices
            WHERE company_id = %s AND invoice_number = %s AND deleted_at IS NULL
            FOR UPDATE
            """,
            (get_current_company_id(), invoice_number)
        )
        return rows[0]["total_amount"] if rows else None


class SalesSource(_Source):
    """Sales invoices and their product lines for a period."""

    name = "sales"

    def fetch_sales(self, tx: Transaction, company_id: UUID, period: Period) -> list[SaleRecord]:
        rows = self._read(
            tx,
            """
            SELECT invoice_number, invoice_date AS sale_date,
                   customer_name, total_amount
            FROM invoices
            WHERE company_id = %s AND deleted_at IS NULL AND status <> 'cancelled'
              AND invoice_date BETWEEN %s AND %s
            ORDER BY invoice_date ASC, invoice_number ASC
            """,
            (company_id, period.start_date, period.end_date)
        )
        return [SaleRecord.model_validate(row) for row in rows]

    def fetch_lines(self, tx: Transaction, company_id: UUID, period: Period) -> list[SaleLine]:
        rows = self._read(
            tx,
            """
            SELECT i.invoice_number, i.invoice_date AS sale_date,
                   li.product_name, li.quantity, li.amount
            FROM invoice_items li
            JOIN invoices i ON i.id = li.invoice_id AND i.company_id = li.company_id
            WHERE i.company_id = %s AND i.deleted_at IS NULL AND i.status <> 'cancelled'
              AND i.invoice_date BETWEEN %s AND %s
            ORDER BY i.invoice_date ASC, i.invoice_number ASC, li.product_name ASC
            """,
            (company_id, period.start_date, period.end_date)
        )
        return [SaleLine.model_validate(row) for row in rows]


class PurchaseSource(_Source):
    name = "purchases"

    def fetch(self, tx: Transaction, company_id: UUID, period: Period) -> list[AmountRecord]:
        rows = self._read(
            tx,
            """
            SELECT purchase_date AS record_date, total_amount AS amount, category
            FROM purchases
            WHERE company_id = %s AND deleted_at IS NULL
              AND purchase_date BETWEEN %s AND %s
            """,
            (company_id, period.start_date, period.end_date)
        )
        return [AmountRecord.model_validate(row) for row in rows]


class ExpenseSource(_Source):
    name = "expenses"

    def fetch(self, tx: Transaction, company_id: UUID, period: Period) -> list[AmountRecord]:
        rows = self._read(
            tx,
            """
            SELECT expense_date AS record_date, amount, category
            FROM expenses
            WHERE company_id = %s AND deleted_at IS NULL
              AND expense_date BETWEEN %s AND %s
            """,
            (company_id, period.start_date, period.end_date)
        )
        return [AmountRecord.model_validate(row) for row in rows]
