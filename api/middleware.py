"""Request-scoped middleware for API requests."""

import logging
import re
import time
from contextvars import ContextVar
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)

_current_request_id: ContextVar[str | None] = ContextVar("current_request_id", default=None)

# Accept caller-supplied ids only if they look like ids, not arbitrary text
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def get_request_id() -> str | None:
    """Id of the request being handled, if any."""
    return _current_request_id.get()


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Assigns a request ID to every request.

    A well-formed inbound X-Request-ID (from a proxy or the dashboard) is
    kept so one id follows the call end to end; otherwise a UUID is minted.
    The id is echoed in the X-Request-ID header and in the envelope's
    meta.request_id.
    """

    async def dispatch(self, request: Request, call_next):
        inbound = request.headers.get("X-Request-ID", "")
        request_id = inbound if _REQUEST_ID_PATTERN.match(inbound) else str(uuid4())
        request.state.request_id = request_id
        token = _current_request_id.set(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            _current_request_id.reset(token)
        response.headers["X-Request-ID"] = request_id
        logger.debug(
            "%s %s -> %d (%.1f ms) [%s]",
            request.method, request.url.path, response.status_code,
            (time.perf_counter() - started) * 1000, request_id,
        )
        return response
