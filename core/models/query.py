"""List query and pagination models shared by credit notes and payments."""

from datetime import date
from math import ceil
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class ListQuery(BaseModel):
    """
    Filters and paging for a ledger listing.

    ``limit`` is clamped by the service to the configured maximum, so a
    client asking for a million rows gets a normal page.
    """

    search: str | None = Field(None, max_length=200)
    status: str | None = None
    type: str | None = None
    customer_id: UUID | None = None
    start_date: date | None = None
    end_date: date | None = None
    page: int = Field(1, ge=1)
    limit: int | None = Field(None, ge=1)

    @model_validator(mode="after")
    def check_range(self) -> "ListQuery":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def of(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=ceil(total / limit) if total else 0)


class Page(BaseModel):
    """One slice of a listing plus its pagination metadata."""

    items: list[Any]
    pagination: Pagination
