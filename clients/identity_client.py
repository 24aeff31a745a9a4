"""
Identity provider client.

Resolves an operator's access token to the provider's user record with
GET {base_url}/auth/v1/user. The dashboard signs operators in with the
provider; this service only verifies the resulting token.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

import requests

logger = logging.getLogger(__name__)


class IdentityProviderError(Exception):
    """Provider unreachable or answered unexpectedly."""


class InvalidAccessTokenError(IdentityProviderError):
    """Provider rejected the access token."""


@dataclass(frozen=True)
class IdentityUser:
    """Subset of the provider's user record we rely on."""

    id: UUID
    email: str | None


class IdentityClient:
    """Verify access tokens against the identity provider."""

    def __init__(self, base_url: str, anon_key: str, timeout_seconds: int = 10):
        if not base_url:
            raise ValueError("base_url is required")
        if not anon_key:
            raise ValueError("anon_key is required")

        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.timeout_seconds = timeout_seconds

    def get_user(self, access_token: str) -> IdentityUser:
        """
        Resolve an access token to its user.

        Raises:
            InvalidAccessTokenError: Token expired, revoked or malformed
            IdentityProviderError: Connection failure or malformed reply
        """
        try:
            response = requests.get(
                f"{self.base_url}/auth/v1/user",
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "apikey": self.anon_key,
                },
                timeout=self.timeout_seconds,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Identity provider connection failed: {e}")
            raise IdentityProviderError(f"Connection failed: {e}")

        if response.status_code in (401, 403):
            raise InvalidAccessTokenError("Access token rejected")

        if not response.ok:
            logger.error(f"Identity provider returned HTTP {response.status_code}")
            raise IdentityProviderError(f"Unexpected status {response.status_code}")

        try:
            body = response.json()
            return IdentityUser(id=UUID(body["id"]), email=body.get("email"))
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Identity provider returned malformed user: {e}")
            raise IdentityProviderError("Malformed user record")
