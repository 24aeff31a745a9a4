"""Authentication service: identity-provider sign-in to dashboard sessions."""

import logging

from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.exceptions import InvalidTokenError, PermissionDeniedError
from auth.session import SessionManager
from auth.types import AuthenticatedUser, Session
from clients.identity_client import IdentityClient, InvalidAccessTokenError

logger = logging.getLogger(__name__)


class AuthService:
    """Orchestrates operator sign-in.

    The dashboard signs operators in with the identity provider and hands
    the resulting access token here. Access is granted from the profile's
    role and admin level, never from a hard-coded user id.
    """

    def __init__(
        self,
        config: AuthConfig,
        auth_db: AuthDatabase,
        session_manager: SessionManager,
        identity: IdentityClient,
    ):
        self._config = config
        self._auth_db = auth_db
        self._session_manager = session_manager
        self._identity = identity

    def sign_in(self, access_token: str) -> AuthenticatedUser:
        """Verify an access token and open a session.

        Raises:
            InvalidTokenError: Provider rejected the token.
            PermissionDeniedError: No profile, or profile is not an admin.
            IdentityProviderError: Provider unreachable.
        """
        try:
            user = self._identity.get_user(access_token)
        except InvalidAccessTokenError:
            logger.warning("Sign-in rejected: invalid access token")
            raise InvalidTokenError("Invalid or expired access token")

        profile = self._auth_db.get_profile(user.id)
        if profile is None:
            logger.warning(f"Sign-in rejected: no profile for {user.id}")
            raise PermissionDeniedError("No dashboard profile for this account")

        if not profile.is_admin:
            logger.warning(
                f"Sign-in rejected for {user.id}: role={profile.role} level={profile.admin_level.name}"
            )
            raise PermissionDeniedError(
                "Access denied. Required: role 'admin' and admin level 'admin' or higher"
            )

        session = self._session_manager.create_session(
            user_id=user.id,
            admin_level=profile.admin_level,
            access_token=access_token,
            email=user.email,
        )
        logger.info(f"Operator {user.id} signed in ({profile.admin_level.name.lower()})")

        return AuthenticatedUser(profile=profile, session=session)

    def logout(self, session_token: str) -> None:
        """Revoke session. Safe to call with invalid token."""
        self._session_manager.revoke_session(session_token)

    def validate_session(self, token: str) -> Session:
        """Raises SessionExpiredError if session invalid or expired."""
        return self._session_manager.validate_session(token)
