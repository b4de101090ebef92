"""
Domain events for the ledger.

Immutable event objects that represent committed state changes. A service
publishes what happened; handlers (analytics refresh, notifications) react
without the publisher knowing who's listening.

Event Categories:
- CreditNoteEvent: credit note lifecycle (issue, apply, cancel)
- PaymentEvent: payment lifecycle (record, complete, void)

Events carry the full domain object and the owning company so handlers don't
need to re-fetch state or rely on ambient context.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class LedgerEvent:
    """Base class for all ledger domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)
    company_id: UUID | None = None


# =============================================================================
# CREDIT NOTE EVENTS
# =============================================================================


@dataclass(frozen=True)
class CreditNoteEvent(LedgerEvent):
    """Events related to credit note lifecycle."""
    credit_note: Any = None  # CreditNote; Any avoids a circular import


@dataclass(frozen=True)
class CreditNoteIssued(CreditNoteEvent):
    """Draft was issued; its number, customer and amount are now locked."""

    @classmethod
    def create(cls, credit_note: Any) -> "CreditNoteIssued":
        return cls(credit_note=credit_note, company_id=credit_note.company_id)


@dataclass(frozen=True)
class CreditNoteApplied(CreditNoteEvent):
    """Issued note was consumed against its original invoice."""

    @classmethod
    def create(cls, credit_note: Any) -> "CreditNoteApplied":
        return cls(credit_note=credit_note, company_id=credit_note.company_id)


@dataclass(frozen=True)
class CreditNoteCancelled(CreditNoteEvent):
    """Draft or issued note was cancelled."""

    @classmethod
    def create(cls, credit_note: Any) -> "CreditNoteCancelled":
        return cls(credit_note=credit_note, company_id=credit_note.company_id)


# =============================================================================
# PAYMENT EVENTS
# =============================================================================


@dataclass(frozen=True)
class PaymentEvent(LedgerEvent):
    """Events related to payment lifecycle."""
    payment: Any = None


@dataclass(frozen=True)
class PaymentRecorded(PaymentEvent):
    """A payment was recorded (pending or already completed)."""

    @classmethod
    def create(cls, payment: Any) -> "PaymentRecorded":
        return cls(payment=payment, company_id=payment.company_id)


@dataclass(frozen=True)
class PaymentCompleted(PaymentEvent):
    """A pending payment settled; it now counts toward balances."""

    @classmethod
    def create(cls, payment: Any) -> "PaymentCompleted":
        return cls(payment=payment, company_id=payment.company_id)


@dataclass(frozen=True)
class PaymentVoided(PaymentEvent):
    """A pending payment failed or was cancelled."""

    @classmethod
    def create(cls, payment: Any) -> "PaymentVoided":
        return cls(payment=payment, company_id=payment.company_id)


# =============================================================================
# ANALYTICS EVENTS
# =============================================================================


@dataclass(frozen=True)
class AnalyticsSnapshotPublished(LedgerEvent):
    """A recomputed snapshot replaced the published one for a period."""
    snapshot: Any = None

    @classmethod
    def create(cls, snapshot: Any) -> "AnalyticsSnapshotPublished":
        return cls(snapshot=snapshot, company_id=snapshot.company_id)
