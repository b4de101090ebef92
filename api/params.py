"""Query parameter dependencies shared by the ledger routers."""

from datetime import date
from uuid import UUID

from fastapi import Query

from core.exceptions import ValidationError
from core.models import ListQuery


def list_query(
    search: str | None = Query(None, max_length=200),
    status: str | None = Query(None),
    type: str | None = Query(None),
    customer_id: UUID | None = Query(None),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
) -> ListQuery:
    """Collect listing filters into a ListQuery (range checked by the model)."""
    return ListQuery(
        search=search,
        status=status,
        type=type,
        customer_id=customer_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )


def page_payload(page) -> dict:
    """Serialize a Page of pydantic items for the response envelope."""
    return {
        "items": [item.model_dump(mode="json") for item in page.items],
        "pagination": page.pagination.model_dump(mode="json"),
    }


def check_range(start_date: date | None, end_date: date | None) -> None:
    if start_date and end_date and start_date > end_date:
        raise ValidationError("start_date must not be after end_date")
