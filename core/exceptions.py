"""Typed exceptions for ledger failures.

Every error a ledger operation can surface is one of these. Each carries a
machine-readable ``code`` that the API layer maps to an HTTP status and the
unified error envelope; the message is safe to show to a user.
"""


class LedgerError(Exception):
    """Base class for all ledger errors."""

    code = "LEDGER_ERROR"


class ValidationError(LedgerError):
    """Malformed or missing field, non-positive amount, bad date range."""

    code = "VALIDATION_ERROR"


class InvalidTransition(LedgerError):
    """Requested status change is not an edge of the entity's state machine."""

    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, entity: str, current: str, event: str):
        self.entity = entity
        self.current = current
        self.event = event
        super().__init__(f"Cannot {event} {entity} in status '{current}'")


class NotEditable(LedgerError):
    """Mutation attempted on an entity that is no longer a draft."""

    code = "NOT_EDITABLE"


class NotDeletable(LedgerError):
    """Deletion attempted on an entity whose state forbids it."""

    code = "NOT_DELETABLE"


class NotFound(LedgerError):
    """
    Unknown identifier.

    Also raised for rows owned by another tenant, so callers cannot test
    for the existence of other companies' records.
    """

    code = "NOT_FOUND"


class ConflictError(LedgerError):
    """Concurrent writers kept winning the race; retries were exhausted."""

    code = "CONFLICT"


class UpstreamUnavailable(LedgerError):
    """A read-only collaborator (sales, purchases, expenses, invoices) failed."""

    code = "UPSTREAM_UNAVAILABLE"

    def __init__(self, source: str, detail: str):
        self.source = source
        self.detail = detail
        super().__init__(f"{source} source unavailable: {detail}")
