"""Tests for SessionManager - session token lifecycle."""

import json
from datetime import timedelta

import pytest

from auth.config import AuthConfig
from auth.exceptions import SessionExpiredError
from auth.session import SessionManager
from auth.types import AdminLevel
from utils.timezone import now_utc


@pytest.fixture
def config():
    """Test config with short session for testing."""
    return AuthConfig(session_expiry_hours=1)


@pytest.fixture
def session_manager(valkey, config):
    return SessionManager(valkey, config)


def _create(manager, user_id, level=AdminLevel.ADMIN):
    return manager.create_session(user_id, level, access_token="provider-token", email="ops@example.com")


class TestCreateSession:

    def test_returns_session_with_token(self, session_manager, test_user_id):
        """Created session has a long random token."""
        session = _create(session_manager, test_user_id)

        assert len(session.token) > 20
        assert session.user_id == test_user_id

    def test_different_users_get_different_tokens(self, session_manager, test_user_id, test_user_b_id):
        session_a = _create(session_manager, test_user_id)
        session_b = _create(session_manager, test_user_b_id)

        assert session_a.token != session_b.token

    def test_stored_with_ttl(self, session_manager, valkey, test_user_id):
        session = _create(session_manager, test_user_id)

        key = f"session:{session.token}"
        assert valkey.expiry[key] == 3600
        stored = json.loads(valkey.data[key])
        assert stored["admin_level"] == int(AdminLevel.ADMIN)
        assert stored["access_token"] == "provider-token"


class TestValidateSession:

    def test_valid_session_round_trips(self, session_manager, test_user_id):
        created = _create(session_manager, test_user_id, AdminLevel.SUPER_ADMIN)

        session = session_manager.validate_session(created.token)

        assert session.user_id == test_user_id
        assert session.admin_level == AdminLevel.SUPER_ADMIN
        assert session.access_token == "provider-token"
        assert session.email == "ops@example.com"

    def test_unknown_token_raises(self, session_manager):
        with pytest.raises(SessionExpiredError, match="not found"):
            session_manager.validate_session("no-such-token")

    def test_expired_session_removed(self, session_manager, valkey, test_user_id):
        """A stored session past expires_at is deleted and rejected."""
        created = _create(session_manager, test_user_id)
        key = f"session:{created.token}"
        stored = json.loads(valkey.data[key])
        stored["expires_at"] = (now_utc() - timedelta(minutes=1)).isoformat()
        valkey.data[key] = json.dumps(stored)

        with pytest.raises(SessionExpiredError, match="expired"):
            session_manager.validate_session(created.token)

        assert key not in valkey.data

    def test_activity_extends_expiry(self, session_manager, test_user_id):
        created = _create(session_manager, test_user_id)

        session = session_manager.validate_session(created.token)

        assert session.expires_at >= created.expires_at
        assert session.last_activity_at >= created.last_activity_at

    def test_no_extension_when_disabled(self, valkey, test_user_id):
        manager = SessionManager(valkey, AuthConfig(session_expiry_hours=1, session_extend_on_activity=False))
        created = _create(manager, test_user_id)

        assert manager.validate_session(created.token).expires_at == created.expires_at


class TestRevokeSession:

    def test_revoked_session_invalid(self, session_manager, test_user_id):
        created = _create(session_manager, test_user_id)

        session_manager.revoke_session(created.token)

        with pytest.raises(SessionExpiredError):
            session_manager.validate_session(created.token)

    def test_revoke_unknown_token_is_safe(self, session_manager):
        session_manager.revoke_session("no-such-token")
