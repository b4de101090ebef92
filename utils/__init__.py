"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, parse_iso, local_date, local_today, reporting_zone
from utils.tenant_context import (
    get_current_company_id,
    get_current_user_id,
    set_tenant,
    clear_tenant,
    tenant_context,
    TenantContextMissing,
)
