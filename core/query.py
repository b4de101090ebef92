"""
Filtering and pagination shared by the credit note and payment listings.

Builds parameterized SQL fragments from a ListQuery. Column names come only
from FilterSpec definitions in code, never from the request, so the only
user input reaching the SQL is through bound parameters.
"""

from dataclasses import dataclass
from typing import Any

from core.models import ListQuery, Pagination


@dataclass(frozen=True)
class FilterSpec:
    """Which columns a listing searches, filters and sorts on."""

    table: str
    search_columns: tuple[str, ...]
    date_column: str
    status_column: str = "status"
    type_column: str | None = None
    customer_column: str | None = "customer_id"

    @property
    def order_by(self) -> str:
        # Most recent first. Same-day rows fall back to creation order, which
        # follows number allocation without comparing "PAY-9999" to "PAY-10000"
        # as strings; id makes the order total so paging is stable.
        return f"{self.date_column} DESC, created_at DESC, id DESC"


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so a search for '50%' matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_where(query: ListQuery, spec: FilterSpec, company_id: Any) -> tuple[str, list[Any]]:
    """
    Build the WHERE clause for a listing.

    Always scoped to the tenant and to non-deleted rows. Unknown status or
    type values simply match nothing, the same as an equality filter in SQL.

    Returns:
        (sql, params) where sql starts with "WHERE".
    """
    clauses = ["company_id = %s", "deleted_at IS NULL"]
    params: list[Any] = [company_id]

    if query.search and query.search.strip():
        pattern = f"%{escape_like(query.search.strip())}%"
        ors = [f"{column} ILIKE %s" for column in spec.search_columns]
        clauses.append(f"({' OR '.join(ors)})")
        params.extend([pattern] * len(spec.search_columns))

    if query.status:
        clauses.append(f"{spec.status_column} = %s")
        params.append(query.status)

    if query.type and spec.type_column:
        clauses.append(f"{spec.type_column} = %s")
        params.append(query.type)

    if query.customer_id and spec.customer_column:
        clauses.append(f"{spec.customer_column} = %s")
        params.append(query.customer_id)

    if query.start_date:
        clauses.append(f"{spec.date_column} >= %s")
        params.append(query.start_date)

    if query.end_date:
        clauses.append(f"{spec.date_column} <= %s")
        params.append(query.end_date)

    return "WHERE " + " AND ".join(clauses), params


def effective_limit(query: ListQuery, default: int, maximum: int) -> int:
    """Client limit, or the default, clamped to the server maximum."""
    return min(query.limit or default, maximum)


def page_bounds(page: int, limit: int) -> tuple[int, int]:
    """(limit, offset) for a 1-based page."""
    return limit, (page - 1) * limit


def paginate(page: int, limit: int, total: int) -> Pagination:
    return Pagination.of(page=page, limit=limit, total=total)
