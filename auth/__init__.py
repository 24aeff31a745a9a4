"""Authentication and authorization modules."""

from auth.exceptions import (
    AuthError,
    InvalidTokenError,
    PermissionDeniedError,
    SessionExpiredError,
)
from auth.types import (
    AdminLevel,
    AuthenticatedUser,
    Profile,
    Session,
    SignInRequest,
)
from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.session import SessionManager
from auth.service import AuthService
from auth.security_middleware import AuthMiddleware
from auth.api import create_auth_router
