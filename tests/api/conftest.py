"""API test fixtures: authenticated TestClient over mocked services."""

from datetime import timedelta
from unittest.mock import Mock

import pytest
from starlette.testclient import TestClient

from api.app import create_app
from auth.session import SessionManager
from auth.types import Session
from core.refresher import SnapshotRefresher
from core.services.analytics_service import AnalyticsService
from core.services.credit_note_service import CreditNoteService
from core.services.payment_service import PaymentService
from core.sources import CustomerDirectory
from utils.timezone import now_utc


# =============================================================================
# SERVICES DICT
# =============================================================================


@pytest.fixture
def services():
    return {
        "credit_note": Mock(spec=CreditNoteService),
        "payment": Mock(spec=PaymentService),
        "customers": Mock(spec=CustomerDirectory),
        "analytics": Mock(spec=AnalyticsService),
        "refresher": Mock(spec=SnapshotRefresher),
    }


# =============================================================================
# AUTH FIXTURES
# =============================================================================


@pytest.fixture
def mock_session_manager(company_id, user_id):
    now = now_utc()
    mock = Mock(spec=SessionManager)
    mock.validate_session.return_value = Session(
        token="test-token",
        company_id=company_id,
        user_id=user_id,
        created_at=now,
        expires_at=now + timedelta(hours=24),
        last_activity_at=now,
    )
    return mock


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app(mock_session_manager, services):
    """Full app: auth middleware, error handlers and every router."""
    return create_app(services, mock_session_manager)


@pytest.fixture
def client(app):
    """Authenticated test client."""
    c = TestClient(app, raise_server_exceptions=False)
    c.headers["Authorization"] = "Bearer test-token"
    return c


@pytest.fixture
def unauthed_client(app):
    """Unauthenticated test client (no session token)."""
    return TestClient(app, raise_server_exceptions=False)
