"""Security middleware for FastAPI - session validation and operator context."""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from auth.session import SessionManager
from auth.exceptions import SessionExpiredError
from auth.types import AdminLevel
from api.base import error_response, ErrorCodes
from utils.user_context import set_current_user_id, clear_current_user_id

logger = logging.getLogger(__name__)


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware that validates the session and sets the operator context.

    For protected routes:
    1. Extracts session token from 'session_token' cookie
    2. Validates session via SessionManager
    3. Rejects sessions below admin level (403)
    4. Sets user id and access token in request.state and user context
    5. Clears context after request completes

    Public paths (sign-in, the payment page, processor webhooks) bypass
    authentication entirely.
    """

    PUBLIC_PATHS = [
        "/auth/session",
        "/auth/logout",
        "/health",
        "/pay/",
        "/webhooks/",
        "/docs",
        "/openapi.json",
    ]

    def __init__(self, app, session_manager: SessionManager):
        super().__init__(app)
        self._session_manager = session_manager

    def _is_public_path(self, path: str) -> bool:
        return any(path == p or path.startswith(p) for p in self.PUBLIC_PATHS)

    def _reject(self, status_code: int, code: str, message: str) -> JSONResponse:
        return JSONResponse(
            status_code=status_code,
            content=error_response(code, message).model_dump(mode="json"),
        )

    async def dispatch(self, request: Request, call_next):
        if self._is_public_path(request.url.path):
            return await call_next(request)

        session_token = request.cookies.get("session_token")
        if not session_token:
            return self._reject(401, ErrorCodes.NOT_AUTHENTICATED, "Authentication required")

        try:
            session = self._session_manager.validate_session(session_token)
        except SessionExpiredError:
            return self._reject(401, ErrorCodes.SESSION_EXPIRED, "Session has expired")

        if session.admin_level < AdminLevel.ADMIN:
            logger.warning(f"Non-admin session for {session.user_id} rejected")
            return self._reject(403, ErrorCodes.AUTHORIZATION_DENIED, "Admin access required")

        set_current_user_id(session.user_id, session.access_token)
        request.state.user_id = session.user_id
        request.state.session = session

        try:
            return await call_next(request)
        finally:
            clear_current_user_id()
