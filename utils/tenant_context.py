"""Propagate tenant (company) and user identity through the call stack using contextvars."""

from contextvars import ContextVar
from uuid import UUID
from contextlib import contextmanager

_current_company_id: ContextVar[UUID | None] = ContextVar("current_company_id", default=None)
_current_user_id: ContextVar[UUID | None] = ContextVar("current_user_id", default=None)


class TenantContextMissing(RuntimeError):
    """Tenant-scoped code ran with no tenant in context."""


def get_current_company_id() -> UUID:
    """
    Get current tenant (company) ID from context.

    Raises TenantContextMissing if no tenant context is set.
    Ledger code never runs without a tenant; reaching this without one
    is a bug in the caller, not something to recover from.
    """
    company_id = _current_company_id.get()
    if company_id is None:
        raise TenantContextMissing(
            "No tenant context set. This usually means you're calling "
            "tenant-scoped code outside of an authenticated request."
        )
    return company_id


def get_current_user_id() -> UUID | None:
    """Acting user for audit attribution. None for background jobs."""
    return _current_user_id.get()


def set_tenant(company_id: UUID, user_id: UUID | None = None) -> None:
    """
    Set current tenant and acting user in context.

    Called by auth middleware after validating the session.
    """
    _current_company_id.set(company_id)
    _current_user_id.set(user_id)


def clear_tenant() -> None:
    """
    Clear tenant context.

    Must be called in a finally block to prevent context leakage.
    """
    _current_company_id.set(None)
    _current_user_id.set(None)


@contextmanager
def tenant_context(company_id: UUID, user_id: UUID | None = None):
    """
    Context manager for temporarily setting tenant context.

    Useful for:
    - Tests
    - Background analytics recomputation for a tenant
    - Admin operations on behalf of a tenant

    Example:
        with tenant_context(company_id):
            page = credit_note_service.list(ListQuery())
    """
    previous_company = _current_company_id.get()
    previous_user = _current_user_id.get()
    set_tenant(company_id, user_id)
    try:
        yield
    finally:
        _current_company_id.set(previous_company)
        _current_user_id.set(previous_user)
