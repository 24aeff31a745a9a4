"""Pydantic models for auth domain."""

from datetime import datetime
from enum import IntEnum
from uuid import UUID

from pydantic import BaseModel, Field


class AdminLevel(IntEnum):
    """Admin hierarchy from the profiles table. Higher includes lower."""

    USER = 0
    ADMIN = 1
    SUPER_ADMIN = 2

    @classmethod
    def parse(cls, value: str | None) -> "AdminLevel":
        """Stored as text ('user', 'admin', 'super_admin'). Unknown or missing is USER."""
        if not value:
            return cls.USER
        return cls.__members__.get(str(value).upper(), cls.USER)


class Profile(BaseModel):
    """Dashboard profile of an identity-provider user."""

    id: UUID
    role: str
    admin_level: AdminLevel = AdminLevel.USER

    model_config = {"from_attributes": True}

    @property
    def is_admin(self) -> bool:
        """Dashboard access: role 'admin' with at least admin level."""
        return self.role == "admin" and self.admin_level >= AdminLevel.ADMIN


class Session(BaseModel):
    """An active operator session."""

    token: str = Field(..., description="Session token (opaque string)")
    user_id: UUID
    email: str | None = None
    admin_level: AdminLevel
    access_token: str = Field(..., description="Identity provider token, forwarded to backend functions")
    created_at: datetime
    expires_at: datetime
    last_activity_at: datetime


class SignInRequest(BaseModel):
    """Exchange an identity-provider access token for a dashboard session."""

    access_token: str = Field(..., min_length=1)


class AuthenticatedUser(BaseModel):
    """Profile and session returned after sign-in."""

    profile: Profile
    session: Session
