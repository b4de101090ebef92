"""
Analytics service: compute, publish and serve period snapshots.

Reads are served from the published snapshot for the resolved period; on a
miss the snapshot is computed, published and returned. Recomputation reads
the ledger and every collaborator inside one repeatable-read transaction so
all sections describe the same instant. A failing collaborator degrades its
own section to zero with a warning; the rest of the snapshot still builds.
"""

import logging
from datetime import date
from typing import Callable, TypeVar
from uuid import UUID

from clients.postgres_client import PostgresClient, Transaction
from core import analytics
from core.analytics import SnapshotInputs, build_snapshot
from core.config import LedgerConfig
from core.event_bus import EventBus
from core.events import AnalyticsSnapshotPublished
from core.exceptions import UpstreamUnavailable
from core.models import (
    AnalyticsSnapshot, CreditNote, Overview, Payment, PaymentAnalytics, Period,
    SectionWarning, TopCustomers, TopProducts,
)
from core.periods import resolve_period
from core.snapshot_store import SnapshotStore
from core.sources import ExpenseSource, PurchaseSource, SalesSource
from utils.tenant_context import get_current_company_id
from utils.timezone import local_today, now_utc

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AnalyticsService:
    """Service for dashboard analytics."""

    def __init__(
        self,
        postgres: PostgresClient,
        snapshots: SnapshotStore,
        event_bus: EventBus,
        config: LedgerConfig,
        sales: SalesSource | None = None,
        purchases: PurchaseSource | None = None,
        expenses: ExpenseSource | None = None,
    ):
        self.postgres = postgres
        self.snapshots = snapshots
        self.event_bus = event_bus
        self.config = config
        self.sales = sales or SalesSource()
        self.purchases = purchases or PurchaseSource()
        self.expenses = expenses or ExpenseSource()

    def resolve(
        self,
        period: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> Period:
        """Resolve request parameters against today in the reporting timezone."""
        return resolve_period(
            today=local_today(self.config.reporting_timezone),
            period=period,
            start_date=start_date,
            end_date=end_date,
            default_period=self.config.default_period,
        )

    # -------------------------------------------------------------------------
    # Computation
    # -------------------------------------------------------------------------

    def _section(
        self,
        tx: Transaction,
        section: str,
        fetch: Callable[[], T],
        warnings: list[SectionWarning],
    ) -> T | None:
        """Run one collaborator read; on failure record a warning and return None."""
        try:
            with tx.savepoint(f"analytics_{section}"):
                return fetch()
        except UpstreamUnavailable as e:
            logger.warning("Analytics section %s degraded: %s", section, e)
            warnings.append(SectionWarning(section=section, code=e.code, message=str(e)))
            return None

    def _read_payments(self, tx: Transaction, company_id: UUID, period: Period) -> list[Payment]:
        rows = tx.execute(
            """
            SELECT * FROM payments
            WHERE company_id = %s AND status = 'completed' AND deleted_at IS NULL
              AND payment_date BETWEEN %s AND %s
            ORDER BY payment_date ASC, created_at ASC, id ASC
            """,
            (company_id, period.start_date, period.end_date)
        )
        return [Payment.model_validate(row) for row in rows]

    def _read_applied_notes(self, tx: Transaction, company_id: UUID, period: Period) -> list[CreditNote]:
        rows = tx.execute(
            """
            SELECT * FROM credit_notes
            WHERE company_id = %s AND status = 'applied' AND deleted_at IS NULL
              AND (applied_at AT TIME ZONE %s)::date BETWEEN %s AND %s
            ORDER BY applied_at ASC, created_at ASC, id ASC
            """,
            (company_id, self.config.reporting_timezone, period.start_date, period.end_date)
        )
        return [CreditNote.model_validate(row) for row in rows]

    def recompute(self, period: Period) -> AnalyticsSnapshot:
        """
        Compute and publish the snapshot for the current tenant and ``period``.

        The published snapshot is replaced in one step; readers see either
        the previous snapshot or this one.
        """
        company_id = get_current_company_id()

        with self.postgres.snapshot() as tx:
            inputs = SnapshotInputs(
                company_id=company_id,
                period=period,
                currency=self.config.currency,
                payments=self._read_payments(tx, company_id, period),
                applied_notes=self._read_applied_notes(tx, company_id, period),
            )
            inputs.sales = self._section(
                tx, analytics.SALES,
                lambda: self.sales.fetch_sales(tx, company_id, period),
                inputs.warnings,
            )
            inputs.sale_lines = self._section(
                tx, analytics.PRODUCTS,
                lambda: self.sales.fetch_lines(tx, company_id, period),
                inputs.warnings,
            )
            inputs.purchases = self._section(
                tx, analytics.PURCHASES,
                lambda: self.purchases.fetch(tx, company_id, period),
                inputs.warnings,
            )
            inputs.expenses = self._section(
                tx, analytics.EXPENSES,
                lambda: self.expenses.fetch(tx, company_id, period),
                inputs.warnings,
            )

        snapshot = build_snapshot(inputs, computed_at=now_utc())
        self.snapshots.publish(snapshot)
        self.event_bus.publish(AnalyticsSnapshotPublished.create(snapshot=snapshot))

        return snapshot

    def current(self, period: Period) -> AnalyticsSnapshot:
        """Published snapshot for ``period``, computing it on a miss."""
        snapshot = self.snapshots.get(get_current_company_id(), period)
        if snapshot is not None:
            return snapshot
        logger.debug("No published snapshot for %s..%s, computing", period.start_date, period.end_date)
        return self.recompute(period)

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def overview(self, period: Period, dense: bool = False) -> Overview:
        """Headline totals, payment methods, daily sales and realized credit."""
        snapshot = self.current(period)
        series = snapshot.sales_by_date
        if dense:
            series = analytics.densify_sales(series, snapshot.period)

        return Overview(
            total_sales=snapshot.total_sales,
            total_purchases=snapshot.total_purchases,
            total_expenses=snapshot.total_expenses,
            payment_methods=snapshot.payment_methods,
            sales_by_date=series,
            realized_credit=snapshot.realized_credit,
            warnings=snapshot.warnings_for(analytics.SALES, analytics.PURCHASES, analytics.EXPENSES),
        )

    def top_products(self, period: Period, limit: int | None = None) -> TopProducts:
        snapshot = self.current(period)
        products = snapshot.top_products
        return TopProducts(
            products=products[:limit] if limit is not None else products,
            warnings=snapshot.warnings_for(analytics.PRODUCTS),
        )

    def top_customers(self, period: Period, limit: int | None = None) -> TopCustomers:
        snapshot = self.current(period)
        customers = snapshot.top_customers
        return TopCustomers(
            customers=customers[:limit] if limit is not None else customers,
            warnings=snapshot.warnings_for(analytics.SALES),
        )

    def payment_analytics(self, period: Period, dense: bool = False) -> PaymentAnalytics:
        """Payment flow, method split and daily received/paid series."""
        snapshot = self.current(period)
        series = snapshot.daily_payments
        if dense:
            series = analytics.densify_flows(series, snapshot.period)

        return PaymentAnalytics(
            payment_flow=snapshot.payment_flow,
            payment_methods=snapshot.payment_methods,
            daily_payments=series,
            warnings=snapshot.warnings_for(analytics.PAYMENTS),
        )
