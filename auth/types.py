"""Pydantic models for auth domain."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class Session(BaseModel):
    """An active user session, bound to one company."""

    token: str = Field(..., description="Session token (opaque string)")
    company_id: UUID = Field(..., description="Tenant every request in this session acts for")
    user_id: UUID
    created_at: datetime
    expires_at: datetime
    last_activity_at: datetime
