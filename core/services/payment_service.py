"""
Payment service: recording, settlement, listing, stats and customer statements.

Payments start pending (or completed when settlement is immediate) and
settle, fail or cancel exactly once. Re-applying the action that produced a
payment's current status is a successful no-op, so a retried "settle" never
double-counts. Only completed payments affect balances and analytics.
"""

import logging
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger, AuditAction
from core.config import LedgerConfig
from core.event_bus import EventBus
from core.events import PaymentRecorded, PaymentCompleted, PaymentVoided
from core.exceptions import NotDeletable, NotFound
from core.models import (
    ListQuery, Page, Payment, PaymentCreate, PaymentStats, PaymentStatus, Statement,
)
from core.query import FilterSpec, build_where, effective_limit, page_bounds, paginate
from core.retry import StaleVersion, retry_on_stale
from core.sequences import PAYMENT_SEQUENCE, SequenceAllocator
from core.sources import CustomerDirectory
from core.state_machine import PaymentAction, next_payment_status
from core.statement import build_statement, export_statement_csv
from utils.tenant_context import get_current_company_id
from utils.timezone import local_today, now_utc

logger = logging.getLogger(__name__)

PAYMENT_FILTER = FilterSpec(
    table="payments",
    search_columns=("payment_number", "reference_number", "customer_name", "description"),
    date_column="payment_date",
    type_column="payment_type",
)


class PaymentService:
    """Service for payment operations."""

    def __init__(
        self,
        postgres: PostgresClient,
        audit: AuditLogger,
        event_bus: EventBus,
        sequences: SequenceAllocator,
        customers: CustomerDirectory,
        config: LedgerConfig,
    ):
        self.postgres = postgres
        self.audit = audit
        self.event_bus = event_bus
        self.sequences = sequences
        self.customers = customers
        self.config = config

    def get_by_id(self, payment_id: UUID) -> Payment | None:
        """Get a live payment of the current tenant by ID."""
        row = self.postgres.execute_single(
            "SELECT * FROM payments WHERE id = %s AND company_id = %s AND deleted_at IS NULL",
            (payment_id, get_current_company_id())
        )

        if row is None:
            return None

        return Payment.model_validate(row)

    def _require(self, payment_id: UUID) -> Payment:
        payment = self.get_by_id(payment_id)
        if payment is None:
            raise NotFound(f"Payment {payment_id} not found")
        return payment

    def record_payment(self, data: PaymentCreate) -> Payment:
        """
        Record a payment for a customer.

        The customer's name is copied onto the payment so later renames
        don't rewrite history.

        Raises:
            NotFound: customer_id is not a customer of this tenant
        """
        company_id = get_current_company_id()
        customer = self.customers.get(data.customer_id)
        if customer is None:
            raise NotFound(f"Customer {data.customer_id} not found")

        payment_id = uuid4()
        number = self.sequences.next_number(PAYMENT_SEQUENCE)
        payment_date = data.payment_date or local_today(self.config.reporting_timezone)
        now = now_utc()
        settled_at = now if data.status == PaymentStatus.COMPLETED else None

        row = self.postgres.execute_returning(
            """
            INSERT INTO payments (
                id, company_id, payment_number, reference_number,
                customer_id, customer_name, amount, payment_date,
                payment_method, payment_type, status, description,
                version, settled_at, created_at, updated_at
            ) VALUES (
                %s, %s, %s, %s,
                %s, %s, %s, %s,
                %s, %s, %s, %s,
                %s, %s, %s, %s
            )
            RETURNING *
            """,
            (
                payment_id, company_id, number, data.reference_number,
                customer.id, customer.name, data.amount, payment_date,
                data.payment_method.value, data.payment_type.value, data.status.value, data.description,
                1, settled_at, now, now
            )
        )[0]

        payment = Payment.model_validate(row)

        self.audit.log_change(
            entity_type="payment",
            entity_id=payment.id,
            action=AuditAction.CREATE,
            changes={"created": payment.model_dump(mode="json")}
        )

        logger.info(
            "Recorded payment %s (%s %s, %s)",
            payment.payment_number, payment.payment_type.value, payment.amount, payment.status.value,
        )
        self.event_bus.publish(PaymentRecorded.create(payment=payment))
        if payment.status == PaymentStatus.COMPLETED:
            self.event_bus.publish(PaymentCompleted.create(payment=payment))

        return payment

    def _transition(self, payment_id: UUID, action: PaymentAction) -> Payment:
        """
        Settle, fail or cancel a pending payment.

        Raises:
            NotFound: Unknown payment
            InvalidTransition: Payment already reached a different terminal status
            ConflictError: Lost repeated races with concurrent writers
        """
        def attempt() -> tuple[Payment, Payment, bool]:
            current = self._require(payment_id)
            target, changed = next_payment_status(current.status, action)
            if not changed:
                return current, current, False

            now = now_utc()
            rows = self.postgres.execute_returning(
                """
                UPDATE payments
                SET status = %s,
                    settled_at = CASE WHEN %s = 'completed' THEN %s ELSE settled_at END,
                    version = version + 1,
                    updated_at = %s
                WHERE id = %s AND company_id = %s AND version = %s
                  AND status = %s AND deleted_at IS NULL
                RETURNING *
                """,
                (
                    target.value, target.value, now, now,
                    payment_id, current.company_id, current.version, current.status.value
                )
            )
            if not rows:
                raise StaleVersion()
            return current, Payment.model_validate(rows[0]), True

        current, updated, changed = retry_on_stale(
            attempt,
            self.config.transition_retry_attempts,
            self.config.transition_retry_backoff_seconds,
            f"payment {payment_id}",
        )

        if not changed:
            logger.debug("Payment %s already %s", updated.payment_number, updated.status.value)
            return updated

        self.audit.log_change(
            entity_type="payment",
            entity_id=payment_id,
            action=AuditAction.TRANSITION,
            changes={
                "status": {"old": current.status.value, "new": updated.status.value},
                "action": action.value,
            }
        )

        logger.info(
            "Payment %s: %s -> %s",
            updated.payment_number, current.status.value, updated.status.value,
        )
        if updated.status == PaymentStatus.COMPLETED:
            self.event_bus.publish(PaymentCompleted.create(payment=updated))
        else:
            self.event_bus.publish(PaymentVoided.create(payment=updated))

        return updated

    def settle(self, payment_id: UUID) -> Payment:
        return self._transition(payment_id, PaymentAction.SETTLE)

    def fail(self, payment_id: UUID) -> Payment:
        return self._transition(payment_id, PaymentAction.FAIL)

    def cancel(self, payment_id: UUID) -> Payment:
        return self._transition(payment_id, PaymentAction.CANCEL)

    def delete(self, payment_id: UUID) -> bool:
        """
        Soft delete a payment that never counted toward a balance.

        Raises:
            NotFound: Unknown payment
            NotDeletable: Payment is completed
        """
        def attempt() -> Payment:
            current = self._require(payment_id)
            if current.status == PaymentStatus.COMPLETED:
                raise NotDeletable(
                    f"Payment {current.payment_number} is completed and cannot be deleted"
                )

            rows = self.postgres.execute_returning(
                """
                UPDATE payments
                SET deleted_at = %s, version = version + 1, updated_at = %s
                WHERE id = %s AND company_id = %s AND version = %s
                  AND status <> 'completed' AND deleted_at IS NULL
                RETURNING id
                """,
                (now_utc(), now_utc(), payment_id, current.company_id, current.version)
            )
            if not rows:
                raise StaleVersion()
            return current

        deleted = retry_on_stale(
            attempt,
            self.config.transition_retry_attempts,
            self.config.transition_retry_backoff_seconds,
            f"payment {payment_id}",
        )

        self.audit.log_change(
            entity_type="payment",
            entity_id=payment_id,
            action=AuditAction.DELETE,
            changes={"deleted": deleted.model_dump(mode="json")}
        )

        return True

    def list(self, query: ListQuery) -> Page:
        """Filtered, paginated payments, most recent first."""
        company_id = get_current_company_id()
        where, params = build_where(query, PAYMENT_FILTER, company_id)
        limit = effective_limit(query, self.config.default_page_size, self.config.max_page_size)
        limit, offset = page_bounds(query.page, limit)

        total = self.postgres.execute_scalar(
            f"SELECT COUNT(*) FROM payments {where}",
            tuple(params)
        ) or 0

        items: list[Payment] = []
        if offset < total:
            rows = self.postgres.execute(
                f"""
                SELECT * FROM payments {where}
                ORDER BY {PAYMENT_FILTER.order_by}
                LIMIT %s OFFSET %s
                """,
                tuple(params + [limit, offset])
            )
            items = [Payment.model_validate(row) for row in rows]

        return Page(items=items, pagination=paginate(query.page, limit, total))

    def stats(self, start_date: date | None = None, end_date: date | None = None) -> PaymentStats:
        """
        Totals for payments dated within the range.

        Received/paid totals include completed payments only; the status
        counts include everything live.
        """
        clauses = ["company_id = %s", "deleted_at IS NULL"]
        params: list = [get_current_company_id()]
        if start_date:
            clauses.append("payment_date >= %s")
            params.append(start_date)
        if end_date:
            clauses.append("payment_date <= %s")
            params.append(end_date)

        row = self.postgres.execute_single(
            f"""
            SELECT
                COALESCE(SUM(amount) FILTER (WHERE status = 'completed' AND payment_type = 'Received'), 0) AS total_received,
                COALESCE(SUM(amount) FILTER (WHERE status = 'completed' AND payment_type = 'Paid'), 0) AS total_paid,
                COUNT(*) AS total_payments,
                COUNT(*) FILTER (WHERE status = 'pending') AS pending_payments,
                COUNT(*) FILTER (WHERE status = 'completed') AS completed_payments,
                COUNT(*) FILTER (WHERE status = 'failed') AS failed_payments,
                COUNT(*) FILTER (WHERE status = 'cancelled') AS cancelled_payments
            FROM payments
            WHERE {' AND '.join(clauses)}
            """,
            tuple(params)
        ) or {}

        return PaymentStats(
            total_received=Decimal(row.get("total_received", 0)),
            total_paid=Decimal(row.get("total_paid", 0)),
            total_payments=row.get("total_payments", 0),
            pending_payments=row.get("pending_payments", 0),
            completed_payments=row.get("completed_payments", 0),
            failed_payments=row.get("failed_payments", 0),
            cancelled_payments=row.get("cancelled_payments", 0),
        )

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    def generate_statement(
        self,
        customer_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> Statement:
        """
        Running statement of a customer's completed payments.

        Payments before ``start_date`` are still read; they make up the
        opening balance.

        Raises:
            NotFound: customer_id is not a customer of this tenant
        """
        customer = self.customers.get(customer_id)
        if customer is None:
            raise NotFound(f"Customer {customer_id} not found")

        clauses = ["company_id = %s", "customer_id = %s", "status = 'completed'", "deleted_at IS NULL"]
        params: list = [get_current_company_id(), customer_id]
        if end_date:
            clauses.append("payment_date <= %s")
            params.append(end_date)

        rows = self.postgres.execute(
            f"""
            SELECT * FROM payments
            WHERE {' AND '.join(clauses)}
            ORDER BY payment_date ASC, created_at ASC, id ASC
            """,
            tuple(params)
        )

        return build_statement(
            customer_id=customer.id,
            customer_name=customer.name,
            payments=[Payment.model_validate(row) for row in rows],
            start_date=start_date,
            end_date=end_date,
        )

    def export_statement(
        self,
        customer_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> tuple[str, str]:
        """
        Statement as a downloadable CSV.

        Returns:
            (filename, csv text)
        """
        statement = self.generate_statement(customer_id, start_date, end_date)
        stamp = (end_date or local_today(self.config.reporting_timezone)).isoformat()
        filename = f"statement-{customer_id}-{stamp}.csv"
        return filename, export_statement_csv(statement)
