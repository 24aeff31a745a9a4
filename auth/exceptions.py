"""Typed exceptions for auth failures."""


class AuthError(Exception):
    """Base class for authentication/authorization errors."""


class InvalidTokenError(AuthError):
    """Identity provider rejected the access token."""


class SessionExpiredError(AuthError):
    """Session has expired and the operator must sign in again."""


class PermissionDeniedError(AuthError):
    """Authenticated, but the profile lacks the required admin level."""
