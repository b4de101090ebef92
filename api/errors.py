"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from core.exceptions import (
    LedgerError, ValidationError, InvalidTransition, NotEditable, NotDeletable,
    NotFound, ConflictError, UpstreamUnavailable,
)
from utils.tenant_context import TenantContextMissing

logger = logging.getLogger(__name__)

# HTTP status per ledger error; subclasses not listed fall back to 400
LEDGER_ERROR_STATUS: dict[type[LedgerError], int] = {
    ValidationError: 400,
    NotFound: 404,
    InvalidTransition: 409,
    NotEditable: 409,
    NotDeletable: 409,
    ConflictError: 409,
    UpstreamUnavailable: 503,
}


def _status_for(exc: LedgerError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in LEDGER_ERROR_STATUS:
            return LEDGER_ERROR_STATUS[error_type]
    return 400


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError):
        status = _status_for(exc)
        if status >= 500:
            logger.warning("%s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status,
            content=error_response(exc.code, str(exc)).model_dump(mode="json"),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=error_response(
                ErrorCodes.VALIDATION_ERROR,
                str(exc.errors()),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(PydanticValidationError)
    async def model_validation_error_handler(request: Request, exc: PydanticValidationError):
        # Raised when query parameters are assembled into a model inside a route
        return JSONResponse(
            status_code=422,
            content=error_response(
                ErrorCodes.VALIDATION_ERROR,
                str(exc.errors(include_url=False)),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(TenantContextMissing)
    async def tenant_missing_handler(request: Request, exc: TenantContextMissing):
        logger.error("Tenant-scoped call without tenant context: %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=401,
            content=error_response(
                ErrorCodes.NOT_AUTHENTICATED,
                "Authentication required",
            ).model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return JSONResponse(
            status_code=500,
            content=error_response(
                ErrorCodes.INTERNAL_ERROR,
                "An internal error occurred",
            ).model_dump(mode="json"),
        )
