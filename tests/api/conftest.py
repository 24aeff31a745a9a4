"""API test fixtures: authenticated TestClient over mocked services."""

from datetime import timedelta
from unittest.mock import Mock

import pytest
from starlette.testclient import TestClient

from auth.config import AuthConfig
from auth.service import AuthService
from auth.session import SessionManager
from auth.types import AdminLevel, Session
from core.event_bus import EventBus
from core.services.catalog_service import CatalogService
from core.services.draft_service import DraftService
from core.services.invoice_service import InvoiceService
from core.services.payment_service import PaymentService
from core.services.settlement_service import SettlementService
from utils.timezone import now_utc


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def invoice_service():
    mock = Mock(spec=InvoiceService)
    mock.payment_link.side_effect = lambda invoice: f"https://pay.test/pay/{invoice.payment_token}"
    return mock


@pytest.fixture
def draft_service():
    return Mock(spec=DraftService)


@pytest.fixture
def catalog_service():
    return Mock(spec=CatalogService)


@pytest.fixture
def settlement_service():
    return Mock(spec=SettlementService)


@pytest.fixture
def services(invoice_service, draft_service, catalog_service, settlement_service):
    return {
        "invoice": invoice_service,
        "draft": draft_service,
        "catalog": catalog_service,
        "payment": Mock(spec=PaymentService),
        "settlement": settlement_service,
        "event_bus": EventBus(),
    }


# =============================================================================
# AUTH FIXTURES
# =============================================================================


@pytest.fixture
def mock_session_manager(test_user_id):
    now = now_utc()
    mock = Mock(spec=SessionManager)
    mock.validate_session.return_value = Session(
        token="test-token",
        user_id=test_user_id,
        admin_level=AdminLevel.ADMIN,
        access_token="operator-access-token",
        created_at=now,
        expires_at=now + timedelta(hours=12),
        last_activity_at=now,
    )
    return mock


@pytest.fixture
def mock_auth_service():
    return Mock(spec=AuthService)


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app(services, mock_session_manager, mock_auth_service):
    """Fully wired app: middleware, error handlers and every router."""
    from main import create_app

    return create_app(
        services, mock_session_manager, mock_auth_service, AuthConfig(cookie_secure=False)
    )


@pytest.fixture
def client(app):
    """Authenticated test client."""
    c = TestClient(app, raise_server_exceptions=False)
    c.cookies.set("session_token", "test-token")
    return c


@pytest.fixture
def unauthed_client(app):
    """Unauthenticated test client (no session cookie)."""
    return TestClient(app, raise_server_exceptions=False)
