"""Response envelope shared by every ledger endpoint."""

from typing import Any
from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, Field

from api.middleware import get_request_id
from core.exceptions import (
    ConflictError, InvalidTransition, NotDeletable, NotEditable, NotFound,
    UpstreamUnavailable, ValidationError,
)
from utils.timezone import now_utc


class APIError(BaseModel):
    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")


class APIMeta(BaseModel):
    timestamp: datetime = Field(..., description="Response timestamp (UTC)")
    request_id: str = Field(..., description="Request identifier, echoed in X-Request-ID")


class APIResponse(BaseModel):
    """
    {success, data, error, meta} for all API endpoints.

    Exactly one of ``data`` / ``error`` is meaningful, chosen by ``success``.
    """

    success: bool
    data: Any | None = None
    error: APIError | None = None
    meta: APIMeta


def _meta() -> APIMeta:
    # Outside a request (tests, scripts) there is no middleware-assigned id
    return APIMeta(timestamp=now_utc(), request_id=get_request_id() or str(uuid4()))


def success_response(data: Any) -> APIResponse:
    return APIResponse(success=True, data=data, meta=_meta())


def error_response(code: str, message: str) -> APIResponse:
    return APIResponse(success=False, error=APIError(code=code, message=message), meta=_meta())


class ErrorCodes:
    """
    Error codes clients can switch on.

    Ledger failures use the code their exception carries, so the two can
    never drift apart.
    """

    # Authentication
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    INVALID_TOKEN = "INVALID_TOKEN"

    # Ledger
    NOT_FOUND = NotFound.code
    VALIDATION_ERROR = ValidationError.code
    INVALID_STATUS_TRANSITION = InvalidTransition.code
    NOT_EDITABLE = NotEditable.code
    NOT_DELETABLE = NotDeletable.code
    CONFLICT = ConflictError.code
    UPSTREAM_UNAVAILABLE = UpstreamUnavailable.code

    INTERNAL_ERROR = "INTERNAL_ERROR"
