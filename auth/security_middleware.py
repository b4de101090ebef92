"""Authentication middleware: resolve the session, then run the request as its tenant."""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from auth.session import SessionManager
from auth.exceptions import AuthError
from api.base import error_response
from utils.tenant_context import set_tenant, clear_tenant

logger = logging.getLogger(__name__)


class AuthMiddleware(BaseHTTPMiddleware):
    """Validates the session and sets the tenant context for protected routes.

    The token comes from an ``Authorization: Bearer`` header, falling back
    to the ``session_token`` cookie. The session's company and user go into
    request.state and the tenant context (read by PostgresClient for RLS),
    and the context is cleared when the request finishes.

    Public paths bypass authentication entirely.
    """

    PUBLIC_PATHS = frozenset({"/health", "/openapi.json"})
    PUBLIC_PREFIXES = ("/docs",)

    def __init__(self, app, session_manager: SessionManager):
        super().__init__(app)
        self._session_manager = session_manager

    def _is_public_path(self, path: str) -> bool:
        return path in self.PUBLIC_PATHS or path.startswith(self.PUBLIC_PREFIXES)

    @staticmethod
    def _extract_token(request: Request) -> str | None:
        authorization = request.headers.get("Authorization", "")
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
        return request.cookies.get("session_token")

    @staticmethod
    def _reject(error: AuthError) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content=error_response(error.code, error.public_message).model_dump(mode="json"),
        )

    async def dispatch(self, request: Request, call_next):
        if self._is_public_path(request.url.path):
            return await call_next(request)

        token = self._extract_token(request)
        if not token:
            return self._reject(AuthError())

        try:
            session = self._session_manager.validate_session(token)
        except AuthError as e:
            logger.debug("Rejected session on %s: %s", request.url.path, e)
            return self._reject(e)

        set_tenant(session.company_id, session.user_id)
        request.state.company_id = session.company_id
        request.state.user_id = session.user_id
        request.state.session = session

        try:
            return await call_next(request)
        finally:
            clear_tenant()
