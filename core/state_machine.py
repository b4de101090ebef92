"""
Lifecycle transition tables for credit notes and payments.

Each entity has a closed set of statuses and a closed set of actions. The
tables below are the only edges that exist; anything else is an
InvalidTransition. Services consult these before writing and again after
losing a concurrent race.
"""

from enum import Enum

from core.exceptions import InvalidTransition
from core.models import CreditNoteStatus, PaymentStatus


class CreditNoteAction(str, Enum):
    ISSUE = "issue"
    APPLY = "apply"
    CANCEL = "cancel"


class PaymentAction(str, Enum):
    SETTLE = "settle"
    FAIL = "fail"
    CANCEL = "cancel"


CREDIT_NOTE_TRANSITIONS: dict[tuple[CreditNoteStatus, CreditNoteAction], CreditNoteStatus] = {
    (CreditNoteStatus.DRAFT, CreditNoteAction.ISSUE): CreditNoteStatus.ISSUED,
    (CreditNoteStatus.ISSUED, CreditNoteAction.APPLY): CreditNoteStatus.APPLIED,
    (CreditNoteStatus.DRAFT, CreditNoteAction.CANCEL): CreditNoteStatus.CANCELLED,
    (CreditNoteStatus.ISSUED, CreditNoteAction.CANCEL): CreditNoteStatus.CANCELLED,
}

PAYMENT_TRANSITIONS: dict[tuple[PaymentStatus, PaymentAction], PaymentStatus] = {
    (PaymentStatus.PENDING, PaymentAction.SETTLE): PaymentStatus.COMPLETED,
    (PaymentStatus.PENDING, PaymentAction.FAIL): PaymentStatus.FAILED,
    (PaymentStatus.PENDING, PaymentAction.CANCEL): PaymentStatus.CANCELLED,
}

# Where each payment action lands; re-applying it there is a no-op success
_PAYMENT_ACTION_TARGETS = {
    PaymentAction.SETTLE: PaymentStatus.COMPLETED,
    PaymentAction.FAIL: PaymentStatus.FAILED,
    PaymentAction.CANCEL: PaymentStatus.CANCELLED,
}


def next_credit_note_status(current: CreditNoteStatus, action: CreditNoteAction) -> CreditNoteStatus:
    """
    Status a credit note moves to when ``action`` happens in ``current``.

    Raises:
        InvalidTransition: If the edge is not in the table (including every
            action on an applied or cancelled note).
    """
    target = CREDIT_NOTE_TRANSITIONS.get((current, action))
    if target is None:
        raise InvalidTransition("credit note", current.value, action.value)
    return target


def credit_note_action_for(current: CreditNoteStatus, target: CreditNoteStatus) -> CreditNoteAction:
    """
    Translate a requested target status into the action that reaches it.

    The dashboard asks for statuses ("set to applied"); the state machine
    speaks in actions. Nothing transitions back into draft.
    """
    match target:
        case CreditNoteStatus.ISSUED:
            return CreditNoteAction.ISSUE
        case CreditNoteStatus.APPLIED:
            return CreditNoteAction.APPLY
        case CreditNoteStatus.CANCELLED:
            return CreditNoteAction.CANCEL
        case CreditNoteStatus.DRAFT:
            raise InvalidTransition("credit note", current.value, "revert to draft")


def next_payment_status(current: PaymentStatus, action: PaymentAction) -> tuple[PaymentStatus, bool]:
    """
    Status a payment moves to when ``action`` happens in ``current``.

    Returns:
        (new_status, changed). ``changed`` is False when the payment is
        already in the action's target state: settling a completed payment
        is a successful no-op, not an error.

    Raises:
        InvalidTransition: For any other edge out of a terminal state.
    """
    if current == _PAYMENT_ACTION_TARGETS[action]:
        return current, False

    target = PAYMENT_TRANSITIONS.get((current, action))
    if target is None:
        raise InvalidTransition("payment", current.value, action.value)
    return target, True
