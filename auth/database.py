"""Database operations for authentication.

Reads the profiles table, which the identity provider's sign-up flow fills.
"""

from uuid import UUID

from clients.postgres_client import PostgresClient
from auth.types import AdminLevel, Profile


class AuthDatabase:
    """Database operations for authentication."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def get_profile(self, user_id: UUID) -> Profile | None:
        """Profile for an identity-provider user, or None if it has none."""
        row = self._db.execute_single(
            "SELECT id, role, admin_level FROM profiles WHERE id = %s",
            (user_id,),
        )
        if row is None:
            return None
        return Profile(
            id=row["id"],
            role=row["role"] or "user",
            admin_level=AdminLevel.parse(row["admin_level"]),
        )
