"""Tests for VaultClient - hvac is patched, no Vault server needed."""

from unittest.mock import MagicMock, patch

import pytest
from hvac.exceptions import Forbidden, InvalidPath

import clients.vault_client as vault_module
from clients.vault_client import (
    VaultClient,
    get_backend_config,
    get_database_url,
    get_stripe_config,
)


@pytest.fixture
def vault_env(monkeypatch):
    monkeypatch.setenv("VAULT_ADDR", "https://vault.example.com")
    monkeypatch.setenv("VAULT_ROLE_ID", "role")
    monkeypatch.setenv("VAULT_SECRET_ID", "secret")
    monkeypatch.delenv("VAULT_NAMESPACE", raising=False)


@pytest.fixture
def hvac_client():
    mock = MagicMock()
    mock.auth.approle.login.return_value = {"auth": {"client_token": "s.token"}}
    mock.is_authenticated.return_value = True
    return mock


@pytest.fixture
def client(vault_env, hvac_client):
    with patch("clients.vault_client.hvac.Client", return_value=hvac_client):
        return VaultClient()


def _secret(data: dict) -> dict:
    return {"data": {"data": data}}


class TestVaultClientInit:
    """Initialization and authentication."""

    def test_missing_vault_addr_raises(self, vault_env, monkeypatch):
        monkeypatch.delenv("VAULT_ADDR")
        with pytest.raises(ValueError, match="VAULT_ADDR"):
            VaultClient()

    def test_missing_approle_credentials_raises(self, vault_env, monkeypatch):
        monkeypatch.delenv("VAULT_SECRET_ID")
        with pytest.raises(ValueError, match="VAULT_ROLE_ID"):
            VaultClient()

    def test_approle_token_applied(self, client, hvac_client):
        hvac_client.auth.approle.login.assert_called_once_with(role_id="role", secret_id="secret")
        assert client.client.token == "s.token"

    def test_rejected_approle_raises_permission_error(self, vault_env, hvac_client):
        hvac_client.auth.approle.login.side_effect = Forbidden("denied")
        with patch("clients.vault_client.hvac.Client", return_value=hvac_client):
            with pytest.raises(PermissionError, match="AppRole authentication failed"):
                VaultClient()

    def test_unauthenticated_after_login_raises(self, vault_env, hvac_client):
        hvac_client.is_authenticated.return_value = False
        with patch("clients.vault_client.hvac.Client", return_value=hvac_client):
            with pytest.raises(PermissionError, match="authentication failed"):
                VaultClient()

    def test_namespace_passed_through(self, vault_env, hvac_client, monkeypatch):
        monkeypatch.setenv("VAULT_NAMESPACE", "ops")
        with patch("clients.vault_client.hvac.Client", return_value=hvac_client) as factory:
            VaultClient()

        factory.assert_called_once_with(url="https://vault.example.com", namespace="ops")


class TestGetSecret:
    """Secret retrieval - paths scoped to billing/."""

    def test_returns_field_value(self, client, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.return_value = _secret({"url": "postgresql://db"})

        assert client.get_secret("database", "url") == "postgresql://db"
        kwargs = hvac_client.secrets.kv.v2.read_secret_version.call_args.kwargs
        assert kwargs["path"] == "billing/database"

    def test_missing_field_lists_available(self, client, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.return_value = _secret({"url": "x"})

        with pytest.raises(KeyError, match="Available: url"):
            client.get_secret("database", "password")

    def test_missing_path(self, client, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.side_effect = InvalidPath("nope")

        with pytest.raises(PermissionError, match="not found"):
            client.get_secret("missing", "url")


class TestCachedHelpers:
    """Module-level helpers read each field from Vault once."""

    @pytest.fixture
    def fake_vault(self, monkeypatch):
        secrets = {
            "database": {"url": "postgresql://db"},
            "stripe": {"secret_key": "sk_test", "webhook_secret": "whsec"},
            "backend": {"url": "https://project.example.co", "anon_key": "anon"},
        }
        fake = MagicMock(spec=VaultClient)
        fake.get_secret.side_effect = lambda path, field: secrets[path][field]
        monkeypatch.setattr(vault_module, "_vault_client_instance", fake)
        monkeypatch.setattr(vault_module, "_secret_cache", {})
        return fake

    def test_database_url_cached(self, fake_vault):
        assert get_database_url() == "postgresql://db"
        assert get_database_url() == "postgresql://db"

        assert fake_vault.get_secret.call_count == 1

    def test_stripe_config(self, fake_vault):
        assert get_stripe_config() == {"secret_key": "sk_test", "webhook_secret": "whsec"}

    def test_backend_config(self, fake_vault):
        assert get_backend_config()["anon_key"] == "anon"
