"""HTTP routes for authentication."""

import logging

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from api.base import success_response, error_response, ErrorCodes
from auth.config import AuthConfig
from auth.exceptions import InvalidTokenError, PermissionDeniedError
from auth.service import AuthService
from auth.types import SignInRequest
from clients.identity_client import IdentityProviderError

logger = logging.getLogger(__name__)


def create_auth_router(auth_service: AuthService, config: AuthConfig | None = None) -> APIRouter:
    """Create auth router with injected service."""
    router = APIRouter(tags=["auth"])
    config = config or AuthConfig()

    @router.post("/session")
    async def sign_in(body: SignInRequest, response: Response):
        """Exchange an identity-provider access token for a session cookie."""
        try:
            result = auth_service.sign_in(body.access_token)
        except InvalidTokenError:
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.INVALID_TOKEN,
                    "Invalid or expired access token",
                ).model_dump(mode="json"),
            )
        except PermissionDeniedError as e:
            return JSONResponse(
                status_code=403,
                content=error_response(
                    ErrorCodes.AUTHORIZATION_DENIED,
                    str(e),
                ).model_dump(mode="json"),
            )
        except IdentityProviderError:
            return JSONResponse(
                status_code=502,
                content=error_response(
                    ErrorCodes.SERVICE_UNAVAILABLE,
                    "Identity provider unavailable",
                ).model_dump(mode="json"),
            )

        session = result.session
        response.set_cookie(
            key="session_token",
            value=session.token,
            httponly=True,
            secure=config.cookie_secure,
            samesite="lax",
            max_age=int((session.expires_at - session.created_at).total_seconds()),
        )

        return success_response({
            "user": {
                "id": str(result.profile.id),
                "email": session.email,
                "admin_level": result.profile.admin_level.name.lower(),
            }
        })

    @router.post("/logout")
    async def logout(request: Request, response: Response):
        """Logout - revoke session and clear cookie."""
        session_token = request.cookies.get("session_token")
        if session_token:
            auth_service.logout(session_token)

        response.delete_cookie(key="session_token")
        return success_response({"message": "Logged out successfully"})

    @router.get("/me")
    async def get_current_user(request: Request):
        """Current operator. Requires authentication (middleware sets request.state)."""
        session = getattr(request.state, "session", None)
        if session is None:
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.NOT_AUTHENTICATED,
                    "Authentication required",
                ).model_dump(mode="json"),
            )

        return success_response({
            "user_id": str(session.user_id),
            "email": session.email,
            "admin_level": session.admin_level.name.lower(),
        })

    return router
