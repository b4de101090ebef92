"""Tests for per-tenant document numbering."""

from unittest.mock import Mock

import pytest

from clients.postgres_client import PostgresClient, Transaction
from core.sequences import (
    CREDIT_NOTE_SEQUENCE, PAYMENT_SEQUENCE, SequenceAllocator, format_number,
)
from utils.tenant_context import TenantContextMissing, tenant_context


class TestFormatNumber:

    def test_pads_to_four_digits(self):
        assert format_number(CREDIT_NOTE_SEQUENCE, 1) == "CN-0001"
        assert format_number(PAYMENT_SEQUENCE, 42) == "PAY-0042"

    def test_widens_past_9999(self):
        assert format_number(CREDIT_NOTE_SEQUENCE, 12345) == "CN-12345"


class TestSequenceAllocator:

    def test_upserts_counter_for_tenant(self, as_company):
        postgres = Mock(spec=PostgresClient)
        postgres.execute_scalar.return_value = 7

        number = SequenceAllocator(postgres).next_number(PAYMENT_SEQUENCE)

        assert number == "PAY-0007"
        query, params = postgres.execute_scalar.call_args.args
        assert "ON CONFLICT (company_id, name)" in query
        assert params[:2] == (as_company, "payment")

    def test_allocates_on_callers_transaction(self, as_company):
        postgres = Mock(spec=PostgresClient)
        tx = Mock(spec=Transaction)
        tx.execute_scalar.return_value = 3

        number = SequenceAllocator(postgres).next_number(CREDIT_NOTE_SEQUENCE, tx)

        assert number == "CN-0003"
        postgres.execute_scalar.assert_not_called()

    def test_requires_tenant(self):
        postgres = Mock(spec=PostgresClient)

        with pytest.raises(TenantContextMissing):
            SequenceAllocator(postgres).next_value(CREDIT_NOTE_SEQUENCE)

    @pytest.mark.db
    def test_numbers_are_per_tenant_and_monotonic(self, db, clean_db, company_id, company_b_id):
        allocator = SequenceAllocator(db)

        with tenant_context(company_id):
            first = [allocator.next_number(CREDIT_NOTE_SEQUENCE) for _ in range(3)]
        with tenant_context(company_b_id):
            other = allocator.next_number(CREDIT_NOTE_SEQUENCE)

        assert first == ["CN-0001", "CN-0002", "CN-0003"]
        assert other == "CN-0001"
