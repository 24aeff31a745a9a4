"""Authentication configuration."""

from pydantic import BaseModel, Field


class AuthConfig(BaseModel):
    """
    Authentication configuration.

    Sessions slide: every authenticated request pushes expiry out by
    session_expiry_hours.
    """

    session_expiry_hours: int = Field(
        default=12,
        description="Session lifetime in hours since last activity",
        ge=1,
        le=720,
    )
    session_extend_on_activity: bool = Field(
        default=True,
        description="Whether to extend session expiry on activity",
    )
    cookie_secure: bool = Field(
        default=True,
        description="Send the session cookie over HTTPS only",
    )
