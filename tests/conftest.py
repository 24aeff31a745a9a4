"""Shared test fixtures for the billing test suite."""

import json
from datetime import timedelta
from pathlib import Path
from unittest.mock import Mock
from uuid import UUID, uuid4

import pytest
from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
# override=True ensures .env takes precedence over shell env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from clients.postgres_client import PostgresClient, Transaction
from clients.valkey_client import ValkeyClient
from core.models import (
    Booking,
    Couple,
    Invoice,
    InvoiceLineItem,
    InvoiceStatus,
    LineItemType,
    RecipientType,
    ServicePackage,
    StoreProduct,
    Vendor,
)
from utils.timezone import now_utc
from utils.user_context import user_context, clear_current_user_id


# =============================================================================
# TEST USER CONSTANTS
# =============================================================================

# Primary test operator - use for single-user tests
TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")
TEST_USER_EMAIL = "admin@test.local"

# Secondary test user - a non-admin profile
TEST_USER_B_ID = UUID("00000000-0000-0000-0000-000000000002")
TEST_USER_B_EMAIL = "couple@test.local"


# =============================================================================
# USER CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_user_context():
    """Ensure clean user context before and after each test."""
    clear_current_user_id()
    yield
    clear_current_user_id()


@pytest.fixture
def test_user_id() -> UUID:
    """The primary test user's ID."""
    return TEST_USER_ID


@pytest.fixture
def test_user_b_id() -> UUID:
    """The secondary test user's ID."""
    return TEST_USER_B_ID


@pytest.fixture
def authenticated_context(test_user_id):
    """Provide an authenticated operator context with a backend access token."""
    with user_context(test_user_id, access_token="operator-access-token"):
        yield test_user_id


# =============================================================================
# INFRASTRUCTURE FIXTURES: in-memory stand-ins, no database or Valkey needed
# =============================================================================


class FakeValkey:
    """Dict-backed store with the ValkeyClient surface used by the services."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.expiry: dict[str, int] = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value, expire_seconds=None):
        self.data[key] = value
        if expire_seconds is not None:
            self.expiry[key] = expire_seconds
        return True

    def set_if_absent(self, key, value, expire_seconds):
        if key in self.data:
            return False
        self.set(key, value, expire_seconds)
        return True

    def delete(self, key):
        self.expiry.pop(key, None)
        return self.data.pop(key, None) is not None

    def set_json(self, key, value, expire_seconds=None):
        return self.set(key, json.dumps(value, default=str), expire_seconds)

    def get_json(self, key):
        raw = self.data.get(key)
        return json.loads(raw) if raw is not None else None


@pytest.fixture
def valkey():
    """ValkeyClient-shaped mock backed by a dict."""
    fake = FakeValkey()
    mock = Mock(spec=ValkeyClient, wraps=fake)
    mock.data = fake.data
    mock.expiry = fake.expiry
    return mock


@pytest.fixture
def tx():
    """Transaction mock; tests set execute/execute_returning return values."""
    return Mock(spec=Transaction)


@pytest.fixture
def db(tx):
    """PostgresClient mock whose transaction() yields the `tx` fixture."""
    mock = Mock(spec=PostgresClient)
    mock.transaction.return_value.__enter__ = Mock(return_value=tx)
    mock.transaction.return_value.__exit__ = Mock(return_value=False)
    return mock


# =============================================================================
# DOMAIN ROW FACTORIES
# =============================================================================


@pytest.fixture
def couple():
    return Couple(id=uuid4(), partner1_name="Ava", partner2_name="Noah", email="ava@example.com")


@pytest.fixture
def vendor():
    return Vendor(id=uuid4(), name="Golden Hour Photo", stripe_account_id="acct_123")


@pytest.fixture
def package():
    return ServicePackage(id=uuid4(), name="Full Day Photography", price=250000)


@pytest.fixture
def product():
    return StoreProduct(id=uuid4(), name="Guest Book", price=4500)


@pytest.fixture
def booking(couple, vendor, package):
    return Booking(
        id=uuid4(),
        couple_id=couple.id,
        vendor_id=vendor.id,
        package_id=package.id,
        amount=50000,
        initial_payment=10000,
        status="confirmed",
    )


def make_invoice(**overrides) -> Invoice:
    """Stored invoice with sensible defaults."""
    now = now_utc()
    data = {
        "id": uuid4(),
        "recipient_type": RecipientType.COUPLE,
        "couple_id": uuid4(),
        "vendor_id": None,
        "total_amount": 17500,
        "remaining_balance": 14000,
        "discount_amount": 2500,
        "discount_percentage": 0,
        "deposit_percentage": 20,
        "deposit_amount": 3500,
        "status": InvoiceStatus.DRAFT,
        "payment_token": "tok_" + uuid4().hex,
        "stripe_payment_intent_id": None,
        "sent_at": None,
        "paid_at": None,
        "created_at": now - timedelta(hours=1),
        "updated_at": now - timedelta(hours=1),
    }
    data.update(overrides)
    return Invoice(**data)


def make_line_item(invoice_id: UUID, **overrides) -> InvoiceLineItem:
    data = {
        "id": uuid4(),
        "invoice_id": invoice_id,
        "type": LineItemType.CUSTOM,
        "custom_description": "Travel fee",
        "custom_price": 10000,
        "quantity": 1,
        "created_at": now_utc(),
    }
    data.update(overrides)
    return InvoiceLineItem(**data)


@pytest.fixture
def invoice_factory():
    """Callable building stored invoices: invoice_factory(status=InvoiceStatus.SENT)."""
    return make_invoice


@pytest.fixture
def line_item_factory():
    """Callable building stored line items: line_item_factory(invoice_id, custom_price=500)."""
    return make_line_item
