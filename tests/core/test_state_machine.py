"""Tests for the credit note and payment transition tables."""

import pytest

from core.exceptions import InvalidTransition
from core.models import CreditNoteStatus, PaymentStatus
from core.state_machine import (
    CreditNoteAction, PaymentAction, credit_note_action_for, next_credit_note_status,
    next_payment_status,
)

CN = CreditNoteStatus
PS = PaymentStatus


class TestCreditNoteTransitions:

    @pytest.mark.parametrize("current,action,expected", [
        (CN.DRAFT, CreditNoteAction.ISSUE, CN.ISSUED),
        (CN.ISSUED, CreditNoteAction.APPLY, CN.APPLIED),
        (CN.DRAFT, CreditNoteAction.CANCEL, CN.CANCELLED),
        (CN.ISSUED, CreditNoteAction.CANCEL, CN.CANCELLED),
    ])
    def test_allowed_edges(self, current, action, expected):
        assert next_credit_note_status(current, action) == expected

    @pytest.mark.parametrize("current,action", [
        (CN.DRAFT, CreditNoteAction.APPLY),
        (CN.ISSUED, CreditNoteAction.ISSUE),
        (CN.APPLIED, CreditNoteAction.CANCEL),
        (CN.APPLIED, CreditNoteAction.APPLY),
        (CN.CANCELLED, CreditNoteAction.ISSUE),
        (CN.CANCELLED, CreditNoteAction.CANCEL),
    ])
    def test_everything_else_is_invalid(self, current, action):
        with pytest.raises(InvalidTransition) as exc_info:
            next_credit_note_status(current, action)

        assert exc_info.value.current == current.value
        assert exc_info.value.event == action.value

    def test_target_status_maps_to_action(self):
        assert credit_note_action_for(CN.DRAFT, CN.ISSUED) == CreditNoteAction.ISSUE
        assert credit_note_action_for(CN.ISSUED, CN.APPLIED) == CreditNoteAction.APPLY
        assert credit_note_action_for(CN.ISSUED, CN.CANCELLED) == CreditNoteAction.CANCEL

    def test_nothing_reverts_to_draft(self):
        with pytest.raises(InvalidTransition):
            credit_note_action_for(CN.ISSUED, CN.DRAFT)


class TestPaymentTransitions:

    @pytest.mark.parametrize("action,expected", [
        (PaymentAction.SETTLE, PS.COMPLETED),
        (PaymentAction.FAIL, PS.FAILED),
        (PaymentAction.CANCEL, PS.CANCELLED),
    ])
    def test_pending_moves_to_target(self, action, expected):
        assert next_payment_status(PS.PENDING, action) == (expected, True)

    @pytest.mark.parametrize("status,action", [
        (PS.COMPLETED, PaymentAction.SETTLE),
        (PS.FAILED, PaymentAction.FAIL),
        (PS.CANCELLED, PaymentAction.CANCEL),
    ])
    def test_repeating_an_action_is_a_no_op(self, status, action):
        assert next_payment_status(status, action) == (status, False)

    @pytest.mark.parametrize("status,action", [
        (PS.FAILED, PaymentAction.SETTLE),
        (PS.COMPLETED, PaymentAction.CANCEL),
        (PS.CANCELLED, PaymentAction.FAIL),
    ])
    def test_leaving_a_terminal_state_is_invalid(self, status, action):
        with pytest.raises(InvalidTransition):
            next_payment_status(status, action)
