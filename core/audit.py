"""
Append-only audit trail of ledger mutations.

One row per create, edit, status change or delete of a credit note or
payment, carrying the tenant, the acting user (None for background jobs)
and the old/new values. Rows are never updated; RLS scopes them to the
tenant like the ledger tables.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from psycopg2.extras import Json
from pydantic import BaseModel

from clients.postgres_client import PostgresClient, Transaction
from utils.tenant_context import get_current_company_id, get_current_user_id
from utils.timezone import now_utc

# Bookkeeping columns that change on every write
_UNTRACKED = frozenset({"updated_at", "version"})


class AuditAction(Enum):
    CREATE = "create"
    UPDATE = "update"
    TRANSITION = "transition"
    DELETE = "delete"


class AuditEntry(BaseModel):
    id: UUID
    company_id: UUID
    user_id: UUID | None
    entity_type: str
    entity_id: UUID
    action: AuditAction
    changes: dict[str, Any]
    created_at: datetime


def compute_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    exclude_fields: set[str] | None = None
) -> dict[str, dict[str, Any]]:
    """
    Field-level diff of two serialized entity states.

    Returns:
        {field: {"old": ..., "new": ...}} for each field whose value differs;
        a field missing on one side counts as None. ``updated_at`` and
        ``version`` are ignored unless ``exclude_fields`` says otherwise.
    """
    exclude = _UNTRACKED if exclude_fields is None else exclude_fields
    return {
        key: {"old": old.get(key), "new": new.get(key)}
        for key in sorted(old.keys() | new.keys())
        if key not in exclude and old.get(key) != new.get(key)
    }


class AuditLogger:
    """
    Writes and reads the audit trail for the current tenant.

    Pass model_dump(mode="json") output in ``changes`` so UUIDs, dates and
    Decimals are stored as JSON values.
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def log_change(
        self,
        entity_type: str,
        entity_id: UUID,
        action: AuditAction,
        changes: dict[str, Any],
        user_id: UUID | None = None,
        tx: Transaction | None = None
    ) -> None:
        """
        Append one entry.

        ``changes`` by action:
        - CREATE: {"created": {entity}}
        - UPDATE: {"field": {"old": ..., "new": ...}, ...}
        - TRANSITION: {"status": {"old": ..., "new": ...}, "action": "issue"}
        - DELETE: {"deleted": {entity at deletion}}

        Pass ``tx`` to write the entry on the same transaction as the change
        it records, so neither commits without the other.

        Raises:
            TenantContextMissing: Called outside a tenant context
        """
        company_id = get_current_company_id()
        executor = self.postgres if tx is None else tx

        executor.execute(
            """
            INSERT INTO audit_log (id, company_id, user_id, entity_type, entity_id, action, changes, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            """,
            (
                uuid4(),
                company_id,
                user_id or get_current_user_id(),
                entity_type,
                entity_id,
                action.value,
                Json(changes),
                now_utc()
            )
        )

    def get_entity_history(self, entity_type: str, entity_id: UUID) -> list[AuditEntry]:
        """Entries for one entity, newest first."""
        rows = self.postgres.execute(
            """
            SELECT id, company_id, user_id, entity_type, entity_id, action, changes, created_at
            FROM audit_log
            WHERE company_id = %s AND entity_type = %s AND entity_id = %s
            ORDER BY created_at DESC
            """,
            (get_current_company_id(), entity_type, entity_id)
        )
        return [AuditEntry.model_validate(row) for row in rows]
