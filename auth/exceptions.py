"""Typed exceptions for auth failures.

Each carries the envelope error code and a message safe to return to the
client; both become a 401 in the auth middleware.
"""


class AuthError(Exception):
    """Base class for authentication errors."""

    code = "NOT_AUTHENTICATED"
    public_message = "Authentication required"


class InvalidTokenError(AuthError):
    """Session token is malformed or its stored record is unreadable."""

    code = "INVALID_TOKEN"
    public_message = "Invalid session token"


class SessionExpiredError(AuthError):
    """Session has expired and user must re-authenticate."""

    code = "SESSION_EXPIRED"
    public_message = "Session has expired"
