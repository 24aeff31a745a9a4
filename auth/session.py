"""Session token lifecycle management.

Sessions are stored in Valkey with TTL matching session expiry.
Token format is cryptographically random (secrets.token_urlsafe).
"""

import secrets
from datetime import timedelta
from uuid import UUID

from clients.valkey_client import ValkeyClient
from auth.config import AuthConfig
from auth.types import AdminLevel, Session
from auth.exceptions import SessionExpiredError
from utils.timezone import now_utc, parse_iso


class SessionManager:
    """Session token lifecycle management.

    A session remembers the operator's admin level and identity-provider
    access token, so requests need neither the provider nor the database.
    """

    KEY_PREFIX = "session:"

    def __init__(self, valkey: ValkeyClient, config: AuthConfig):
        self._valkey = valkey
        self._config = config

    def _key(self, token: str) -> str:
        return f"{self.KEY_PREFIX}{token}"

    def _store(self, session: Session) -> None:
        self._valkey.set_json(
            self._key(session.token),
            {
                "user_id": str(session.user_id),
                "email": session.email,
                "admin_level": int(session.admin_level),
                "access_token": session.access_token,
                "created_at": session.created_at.isoformat(),
                "expires_at": session.expires_at.isoformat(),
                "last_activity_at": session.last_activity_at.isoformat(),
            },
            expire_seconds=self._config.session_expiry_hours * 3600,
        )

    def create_session(
        self,
        user_id: UUID,
        admin_level: AdminLevel,
        access_token: str,
        email: str | None = None,
    ) -> Session:
        """Create and store a new session."""
        now = now_utc()
        session = Session(
            token=secrets.token_urlsafe(32),
            user_id=user_id,
            email=email,
            admin_level=admin_level,
            access_token=access_token,
            created_at=now,
            expires_at=now + timedelta(hours=self._config.session_expiry_hours),
            last_activity_at=now,
        )
        self._store(session)
        return session

    def validate_session(self, token: str) -> Session:
        """Validate session token and return session.

        Raises SessionExpiredError if token invalid or expired.
        """
        data = self._valkey.get_json(self._key(token))

        if data is None:
            raise SessionExpiredError("Session not found or expired")

        session = Session(
            token=token,
            user_id=UUID(data["user_id"]),
            email=data.get("email"),
            admin_level=AdminLevel(data.get("admin_level", AdminLevel.USER)),
            access_token=data["access_token"],
            created_at=parse_iso(data["created_at"]),
            expires_at=parse_iso(data["expires_at"]),
            last_activity_at=parse_iso(data["last_activity_at"]),
        )

        # Valkey TTL normally removes these first
        if now_utc() > session.expires_at:
            self._valkey.delete(self._key(token))
            raise SessionExpiredError("Session expired")

        if self._config.session_extend_on_activity:
            session = self._extend_session(session)

        return session

    def _extend_session(self, session: Session) -> Session:
        now = now_utc()
        updated = session.model_copy(update={
            "expires_at": now + timedelta(hours=self._config.session_expiry_hours),
            "last_activity_at": now,
        })
        self._store(updated)
        return updated

    def revoke_session(self, token: str) -> None:
        """Revoke session (logout). Safe to call with nonexistent token."""
        self._valkey.delete(self._key(token))
