"""
Credit note service: draft editing, lifecycle transitions, listing and stats.

A credit note is created as a draft against an existing sales invoice,
edited only while it is a draft, then issued, applied against the invoice or
cancelled. Transitions follow core.state_machine and use an optimistic
version check so concurrent requests on one note can never both succeed.
"""

import logging
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient, Transaction
from core.audit import AuditLogger, AuditAction, compute_changes
from core.config import LedgerConfig
from core.event_bus import EventBus
from core.events import CreditNoteIssued, CreditNoteApplied, CreditNoteCancelled
from core.exceptions import NotDeletable, NotEditable, NotFound, ValidationError
from core.models import (
    CreditNote, CreditNoteCreate, CreditNoteUpdate, CreditNoteStatus,
    CreditNoteStats, CustomerSnapshot, ListQuery, Page, StatusBreakdown,
)
from core.query import FilterSpec, build_where, effective_limit, page_bounds, paginate
from core.retry import StaleVersion, retry_on_stale
from core.sequences import CREDIT_NOTE_SEQUENCE, SequenceAllocator
from core.sources import CustomerDirectory, InvoiceDirectory
from core.state_machine import CreditNoteAction, credit_note_action_for, next_credit_note_status
from utils.tenant_context import get_current_company_id
from utils.timezone import local_today, now_utc

logger = logging.getLogger(__name__)

CREDIT_NOTE_FILTER = FilterSpec(
    table="credit_notes",
    search_columns=("credit_note_number", "original_invoice_number", "customer_name", "customer_email"),
    date_column="credit_note_date",
)

# Valid columns that can be edited on a draft
_UPDATABLE_COLUMNS = {
    "original_invoice_number", "customer_name", "customer_email", "customer_phone",
    "total_amount", "reason", "credit_note_date",
}

# Timestamp column stamped when a note enters each status
_STATUS_TIMESTAMPS = {
    CreditNoteStatus.ISSUED: "issued_at",
    CreditNoteStatus.APPLIED: "applied_at",
    CreditNoteStatus.CANCELLED: "cancelled_at",
}

_STATUS_EVENTS = {
    CreditNoteStatus.ISSUED: CreditNoteIssued,
    CreditNoteStatus.APPLIED: CreditNoteApplied,
    CreditNoteStatus.CANCELLED: CreditNoteCancelled,
}


class CreditNoteService:
    """Service for credit note operations."""

    def __init__(
        self,
        postgres: PostgresClient,
        audit: AuditLogger,
        event_bus: EventBus,
        sequences: SequenceAllocator,
        customers: CustomerDirectory,
        invoices: InvoiceDirectory,
        config: LedgerConfig,
    ):
        self.postgres = postgres
        self.audit = audit
        self.event_bus = event_bus
        self.sequences = sequences
        self.customers = customers
        self.invoices = invoices
        self.config = config

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_by_id(self, credit_note_id: UUID) -> CreditNote | None:
        """
        Get credit note by ID.

        Returns:
            CreditNote if found, not deleted and owned by the current tenant.
        """
        row = self.postgres.execute_single(
            "SELECT * FROM credit_notes WHERE id = %s AND company_id = %s AND deleted_at IS NULL",
            (credit_note_id, get_current_company_id())
        )

        if row is None:
            return None

        return CreditNote.model_validate(row)

    def _require(self, credit_note_id: UUID) -> CreditNote:
        note = self.get_by_id(credit_note_id)
        if note is None:
            raise NotFound(f"Credit note {credit_note_id} not found")
        return note

    def list(self, query: ListQuery) -> Page:
        """
        Filtered, paginated credit notes, most recent first.

        A page past the end is an empty slice, not an error.
        """
        company_id = get_current_company_id()
        where, params = build_where(query, CREDIT_NOTE_FILTER, company_id)
        limit = effective_limit(query, self.config.default_page_size, self.config.max_page_size)
        limit, offset = page_bounds(query.page, limit)

        total = self.postgres.execute_scalar(
            f"SELECT COUNT(*) FROM credit_notes {where}",
            tuple(params)
        ) or 0

        items: list[CreditNote] = []
        if offset < total:
            rows = self.postgres.execute(
                f"""
                SELECT * FROM credit_notes {where}
                ORDER BY {CREDIT_NOTE_FILTER.order_by}
                LIMIT %s OFFSET %s
                """,
                tuple(params + [limit, offset])
            )
            items = [CreditNote.model_validate(row) for row in rows]

        return Page(items=items, pagination=paginate(query.page, limit, total))

    def stats(self, start_date: date | None = None, end_date: date | None = None) -> CreditNoteStats:
        """Count and amount per status for notes dated within the range."""
        clauses = ["company_id = %s", "deleted_at IS NULL"]
        params: list = [get_current_company_id()]
        if start_date:
            clauses.append("credit_note_date >= %s")
            params.append(start_date)
        if end_date:
            clauses.append("credit_note_date <= %s")
            params.append(end_date)

        rows = self.postgres.execute(
            f"""
            SELECT status, COUNT(*) AS count, COALESCE(SUM(total_amount), 0) AS total_amount
            FROM credit_notes
            WHERE {' AND '.join(clauses)}
            GROUP BY status
            """,
            tuple(params)
        )

        by_status = {CreditNoteStatus(row["status"]): row for row in rows}
        breakdown = [
            StatusBreakdown(
                status=status,
                count=by_status[status]["count"],
                total_amount=Decimal(by_status[status]["total_amount"]),
            )
            for status in CreditNoteStatus
            if status in by_status
        ]

        return CreditNoteStats(
            total_credit_notes=sum(b.count for b in breakdown),
            total_amount=sum((b.total_amount for b in breakdown), Decimal("0.00")),
            status_breakdown=breakdown,
        )

    # -------------------------------------------------------------------------
    # Draft editing
    # -------------------------------------------------------------------------

    def _customer_snapshot(self, data: CreditNoteCreate) -> CustomerSnapshot:
        """Freeze the customer's details as of creation."""
        if data.customer_id is not None:
            customer = self.customers.get(data.customer_id)
            if customer is None:
                raise NotFound(f"Customer {data.customer_id} not found")
            return CustomerSnapshot(
                name=data.customer_name or customer.name,
                email=data.customer_email or customer.email,
                phone=data.customer_phone or customer.phone,
            )
        return CustomerSnapshot(
            name=data.customer_name,
            email=data.customer_email,
            phone=data.customer_phone,
        )

    def _check_invoice_credit(
        self,
        tx: Transaction,
        invoice_number: str,
        amount: Decimal,
        exclude_id: UUID | None = None,
    ) -> None:
        """
        Credit against an invoice may never exceed the invoice.

        Locks the invoice row on ``tx``, then sums every live, non-cancelled
        note against it (other than the one being edited) and adds the new
        amount. The caller must write the note on the same ``tx`` so the
        lock is held until the write commits.

        Raises:
            ValidationError: Unknown invoice, or the credit would exceed its total.
        """
        invoice_total = self.invoices.lock_total(tx, invoice_number)
        if invoice_total is None:
            raise ValidationError(f"Invoice {invoice_number} not found")

        existing = tx.execute_scalar(
            """
            SELECT COALESCE(SUM(total_amount), 0) FROM credit_notes
            WHERE company_id = %s AND original_invoice_number = %s
              AND status <> 'cancelled' AND deleted_at IS NULL
              AND id <> %s
            """,
            (get_current_company_id(), invoice_number, exclude_id or uuid4())
        ) or Decimal("0")

        if Decimal(existing) + amount > Decimal(invoice_total):
            raise ValidationError(
                f"Credit of {amount} exceeds the remaining creditable amount "
                f"{Decimal(invoice_total) - Decimal(existing)} on invoice {invoice_number}"
            )

    def create(self, data: CreditNoteCreate) -> CreditNote:
        """
        Create a credit note in DRAFT status.

        The invoice check, number allocation, insert and audit entry share one
        transaction.

        Args:
            data: Credit note creation data

        Returns:
            Created draft with its sequential number assigned

        Raises:
            NotFound: customer_id given but not a customer of this tenant
            ValidationError: Invoice unknown or over-credited
        """
        company_id = get_current_company_id()
        customer = self._customer_snapshot(data)
        note_date = data.credit_note_date or local_today(self.config.reporting_timezone)

        with self.postgres.transaction() as tx:
            self._check_invoice_credit(tx, data.original_invoice_number, data.total_amount)

            number = self.sequences.next_number(CREDIT_NOTE_SEQUENCE, tx)
            now = now_utc()

            row = tx.execute(
                """
                INSERT INTO credit_notes (
                    id, company_id, credit_note_number, original_invoice_number,
                    customer_id, customer_name, customer_email, customer_phone,
                    total_amount, reason, credit_note_date, status, version,
                    created_at, updated_at
                ) VALUES (
                    %s, %s, %s, %s,
                    %s, %s, %s, %s,
                    %s, %s, %s, %s, %s,
                    %s, %s
                )
                RETURNING *
                """,
                (
                    uuid4(), company_id, number, data.original_invoice_number,
                    data.customer_id, customer.name, customer.email, customer.phone,
                    data.total_amount, data.reason, note_date, CreditNoteStatus.DRAFT.value, 1,
                    now, now
                )
            )[0]

            note = CreditNote.model_validate(row)

            self.audit.log_change(
                entity_type="credit_note",
                entity_id=note.id,
                action=AuditAction.CREATE,
                changes={"created": note.model_dump(mode="json")},
                tx=tx
            )

        return note

    def update(self, credit_note_id: UUID, data: CreditNoteUpdate) -> CreditNote:
        """
        Edit a draft credit note.

        Raises:
            NotFound: Unknown note
            NotEditable: Note is issued, applied or cancelled
            ValidationError: New amount/invoice would over-credit the invoice
            ConflictError: Lost repeated races with concurrent writers
        """
        updates = {
            k: v for k, v in data.model_dump(exclude_none=True).items()
            if k in _UPDATABLE_COLUMNS
        }

        def attempt() -> CreditNote:
            current = self._require(credit_note_id)
            if not current.is_editable:
                raise NotEditable(
                    f"Credit note {current.credit_note_number} is {current.status.value} and can no longer be edited"
                )
            if not updates:
                return current

            set_parts = [f"{field} = %s" for field in updates]
            params = list(updates.values())
            set_parts.extend(["version = version + 1", "updated_at = %s"])
            params.extend([now_utc(), credit_note_id, current.company_id, current.version])

            # A lost version race raises inside the block and releases the invoice lock
            with self.postgres.transaction() as tx:
                if "total_amount" in updates or "original_invoice_number" in updates:
                    self._check_invoice_credit(
                        tx,
                        updates.get("original_invoice_number", current.original_invoice_number),
                        updates.get("total_amount", current.total_amount),
                        exclude_id=current.id,
                    )

                rows = tx.execute(
                    f"""
                    UPDATE credit_notes
                    SET {', '.join(set_parts)}
                    WHERE id = %s AND company_id = %s AND version = %s
                      AND status = 'draft' AND deleted_at IS NULL
                    RETURNING *
                    """,
                    tuple(params)
                )
                if not rows:
                    raise StaleVersion()
                updated = CreditNote.model_validate(rows[0])

                changes = compute_changes(
                    current.model_dump(mode="json"),
                    updated.model_dump(mode="json")
                )
                if changes:
                    self.audit.log_change(
                        entity_type="credit_note",
                        entity_id=credit_note_id,
                        action=AuditAction.UPDATE,
                        changes=changes,
                        tx=tx
                    )

            return updated

        return retry_on_stale(
            attempt,
            self.config.transition_retry_attempts,
            self.config.transition_retry_backoff_seconds,
            f"credit note {credit_note_id}",
        )

    def delete(self, credit_note_id: UUID) -> bool:
        """
        Soft delete a draft credit note.

        Returns:
            True once deleted.

        Raises:
            NotFound: Unknown note
            NotDeletable: Note has left draft; cancel it instead
        """
        def attempt() -> CreditNote:
            current = self._require(credit_note_id)
            if current.status != CreditNoteStatus.DRAFT:
                raise NotDeletable(
                    f"Credit note {current.credit_note_number} is {current.status.value}; "
                    f"only drafts can be deleted (cancel it instead)"
                )

            rows = self.postgres.execute_returning(
                """
                UPDATE credit_notes
                SET deleted_at = %s, version = version + 1, updated_at = %s
                WHERE id = %s AND company_id = %s AND version = %s
                  AND status = 'draft' AND deleted_at IS NULL
                RETURNING id
                """,
                (now_utc(), now_utc(), credit_note_id, current.company_id, current.version)
            )
            if not rows:
                raise StaleVersion()
            return current

        deleted = retry_on_stale(
            attempt,
            self.config.transition_retry_attempts,
            self.config.transition_retry_backoff_seconds,
            f"credit note {credit_note_id}",
        )

        self.audit.log_change(
            entity_type="credit_note",
            entity_id=credit_note_id,
            action=AuditAction.DELETE,
            changes={"deleted": deleted.model_dump(mode="json")}
        )

        return True

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def transition(self, credit_note_id: UUID, action: CreditNoteAction) -> CreditNote:
        """
        Apply a lifecycle action.

        On a lost race the note is re-read and the action re-validated, so
        of two concurrent `issue` calls one succeeds and the other sees an
        issued note and fails with InvalidTransition.

        Raises:
            NotFound: Unknown note
            InvalidTransition: Edge not in the transition table
            ConflictError: Lost repeated races with concurrent writers
        """
        def attempt() -> tuple[CreditNote, CreditNote]:
            current = self._require(credit_note_id)
            target = next_credit_note_status(current.status, action)
            now = now_utc()

            set_parts = ["status = %s", f"{_STATUS_TIMESTAMPS[target]} = %s"]
            params: list = [target.value, now]

            # Number is immutable once issued; allocate here only if missing
            if target == CreditNoteStatus.ISSUED and current.credit_note_number is None:
                set_parts.append("credit_note_number = %s")
                params.append(self.sequences.next_number(CREDIT_NOTE_SEQUENCE))

            set_parts.extend(["version = version + 1", "updated_at = %s"])
            params.extend([now, credit_note_id, current.company_id, current.version, current.status.value])

            rows = self.postgres.execute_returning(
                f"""
                UPDATE credit_notes
                SET {', '.join(set_parts)}
                WHERE id = %s AND company_id = %s AND version = %s
                  AND status = %s AND deleted_at IS NULL
                RETURNING *
                """,
                tuple(params)
            )
            if not rows:
                raise StaleVersion()
            return current, CreditNote.model_validate(rows[0])

        current, updated = retry_on_stale(
            attempt,
            self.config.transition_retry_attempts,
            self.config.transition_retry_backoff_seconds,
            f"credit note {credit_note_id}",
        )

        self.audit.log_change(
            entity_type="credit_note",
            entity_id=credit_note_id,
            action=AuditAction.TRANSITION,
            changes={
                "status": {"old": current.status.value, "new": updated.status.value},
                "action": action.value,
            }
        )

        logger.info(
            "Credit note %s: %s -> %s",
            updated.credit_note_number, current.status.value, updated.status.value,
        )
        self.event_bus.publish(_STATUS_EVENTS[updated.status].create(credit_note=updated))

        return updated

    def issue(self, credit_note_id: UUID) -> CreditNote:
        return self.transition(credit_note_id, CreditNoteAction.ISSUE)

    def apply(self, credit_note_id: UUID) -> CreditNote:
        return self.transition(credit_note_id, CreditNoteAction.APPLY)

    def cancel(self, credit_note_id: UUID) -> CreditNote:
        return self.transition(credit_note_id, CreditNoteAction.CANCEL)

    def set_status(self, credit_note_id: UUID, target: CreditNoteStatus) -> CreditNote:
        """Move a note to ``target`` via whichever action reaches it."""
        current = self._require(credit_note_id)
        return self.transition(credit_note_id, credit_note_action_for(current.status, target))
