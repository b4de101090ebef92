"""
Per-tenant sequential document numbers.

Numbers come from a counter row per (company, sequence name). The upsert
takes the row lock, so concurrent allocators queue on it and each receives
a distinct value. Allocating on the caller's transaction ties the number to
the document insert; an allocation on its own commits immediately and a
later failure leaves a gap. Duplicates are impossible either way.
"""

import logging

from clients.postgres_client import PostgresClient, Transaction
from utils.tenant_context import get_current_company_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

CREDIT_NOTE_SEQUENCE = "credit_note"
PAYMENT_SEQUENCE = "payment"

_PREFIXES = {
    CREDIT_NOTE_SEQUENCE: "CN",
    PAYMENT_SEQUENCE: "PAY",
}


def format_number(sequence: str, value: int) -> str:
    """CN-0001, PAY-0042; widens naturally past 9999."""
    return f"{_PREFIXES[sequence]}-{value:04d}"


class SequenceAllocator:
    """Allocates monotonic document numbers for the current tenant."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def next_value(self, sequence: str, tx: Transaction | None = None) -> int:
        company_id = get_current_company_id()
        executor = self.postgres if tx is None else tx
        value = executor.execute_scalar(
            """
            INSERT INTO ledger_sequences (company_id, name, last_value, updated_at)
            VALUES (%s, %s, 1, %s)
            ON CONFLICT (company_id, name)
            DO UPDATE SET last_value = ledger_sequences.last_value + 1,
                          updated_at = EXCLUDED.updated_at
            RETURNING last_value
            """,
            (company_id, sequence, now_utc())
        )
        if value is None:
            raise RuntimeError(f"Sequence allocation returned no value for '{sequence}'")
        return value

    def next_number(self, sequence: str, tx: Transaction | None = None) -> str:
        return format_number(sequence, self.next_value(sequence, tx))
