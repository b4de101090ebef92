"""Tests for AuthMiddleware - session validation and tenant context."""

from datetime import timedelta
from unittest.mock import Mock

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from auth.security_middleware import AuthMiddleware
from auth.session import SessionManager
from auth.types import Session
from auth.exceptions import InvalidTokenError, SessionExpiredError
from utils.tenant_context import get_current_company_id, get_current_user_id
from utils.timezone import now_utc


@pytest.fixture
def mock_session_manager():
    """Mock SessionManager."""
    return Mock(spec=SessionManager)


@pytest.fixture
def valid_session(company_id, user_id):
    now = now_utc()
    return Session(
        token="valid-token",
        company_id=company_id,
        user_id=user_id,
        created_at=now,
        expires_at=now + timedelta(hours=24),
        last_activity_at=now,
    )


@pytest.fixture
def app_with_middleware(mock_session_manager):
    """FastAPI app with auth middleware."""
    app = FastAPI()

    app.add_middleware(
        AuthMiddleware,
        session_manager=mock_session_manager,
    )

    @app.get("/api/protected")
    async def protected_route(request: Request):
        return {
            "company_id": str(request.state.company_id),
            "user_id": str(request.state.user_id),
            "context_company_id": str(get_current_company_id()),
            "context_user_id": str(get_current_user_id()),
        }

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/openapi.json")
    async def openapi():
        return {"openapi": "3.0"}

    return app


class TestPublicPaths:
    """Test that public paths skip authentication."""

    @pytest.mark.parametrize("path", ["/health", "/openapi.json"])
    def test_public_path_without_token_succeeds(self, app_with_middleware, mock_session_manager, path):
        client = TestClient(app_with_middleware)

        response = client.get(path)

        assert response.status_code == 200
        mock_session_manager.validate_session.assert_not_called()


class TestProtectedPaths:
    """Test protected path authentication."""

    def test_no_token_returns_401(self, app_with_middleware):
        client = TestClient(app_with_middleware)

        response = client.get("/api/protected")

        assert response.status_code == 401
        assert response.json()["success"] is False
        assert response.json()["error"]["code"] == "NOT_AUTHENTICATED"

    def test_bearer_token_sets_tenant(self, app_with_middleware, mock_session_manager, valid_session):
        mock_session_manager.validate_session.return_value = valid_session
        client = TestClient(app_with_middleware)

        response = client.get("/api/protected", headers={"Authorization": "Bearer valid-token"})

        assert response.status_code == 200
        body = response.json()
        assert body["company_id"] == str(valid_session.company_id)
        assert body["context_company_id"] == str(valid_session.company_id)
        assert body["context_user_id"] == str(valid_session.user_id)
        mock_session_manager.validate_session.assert_called_once_with("valid-token")

    def test_cookie_token_is_accepted(self, app_with_middleware, mock_session_manager, valid_session):
        mock_session_manager.validate_session.return_value = valid_session
        client = TestClient(app_with_middleware)
        client.cookies.set("session_token", "cookie-token")

        response = client.get("/api/protected")

        assert response.status_code == 200
        mock_session_manager.validate_session.assert_called_once_with("cookie-token")

    def test_bearer_takes_precedence_over_cookie(self, app_with_middleware, mock_session_manager, valid_session):
        mock_session_manager.validate_session.return_value = valid_session
        client = TestClient(app_with_middleware)
        client.cookies.set("session_token", "cookie-token")

        client.get("/api/protected", headers={"Authorization": "Bearer header-token"})

        mock_session_manager.validate_session.assert_called_once_with("header-token")

    def test_non_bearer_scheme_is_ignored(self, app_with_middleware, mock_session_manager):
        client = TestClient(app_with_middleware)

        response = client.get("/api/protected", headers={"Authorization": "Basic dXNlcjpwYXNz"})

        assert response.status_code == 401
        mock_session_manager.validate_session.assert_not_called()

    def test_expired_session_returns_401(self, app_with_middleware, mock_session_manager):
        mock_session_manager.validate_session.side_effect = SessionExpiredError("expired")
        client = TestClient(app_with_middleware)

        response = client.get("/api/protected", headers={"Authorization": "Bearer old-token"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "SESSION_EXPIRED"

    def test_malformed_session_returns_401(self, app_with_middleware, mock_session_manager):
        mock_session_manager.validate_session.side_effect = InvalidTokenError("bad record")
        client = TestClient(app_with_middleware)

        response = client.get("/api/protected", headers={"Authorization": "Bearer bad-token"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_TOKEN"
