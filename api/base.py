"""Unified API response format and error handling."""

from typing import Any
from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, Field

from api.middleware import get_current_request_id
from utils.timezone import now_utc


def _request_id() -> str:
    return get_current_request_id() or str(uuid4())


class APIError(BaseModel):
    """Error details in API response."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(None, description="Structured context, e.g. the failed rule")


class APIMeta(BaseModel):
    """Metadata included in every API response."""

    timestamp: datetime = Field(..., description="Response timestamp (UTC)")
    request_id: str = Field(..., description="Unique request identifier for tracing")


class APIResponse(BaseModel):
    """
    Unified response format for all API endpoints.

    Every endpoint returns this structure, making client parsing predictable.
    """

    success: bool
    data: Any | None = None
    error: APIError | None = None
    meta: APIMeta


def success_response(data: Any) -> APIResponse:
    """Create a success response."""
    return APIResponse(
        success=True,
        data=data,
        error=None,
        meta=APIMeta(
            timestamp=now_utc(),
            request_id=_request_id(),
        ),
    )


def error_response(code: str, message: str, details: dict[str, Any] | None = None) -> APIResponse:
    """Create an error response."""
    return APIResponse(
        success=False,
        data=None,
        error=APIError(code=code, message=message, details=details),
        meta=APIMeta(
            timestamp=now_utc(),
            request_id=_request_id(),
        ),
    )


class ErrorCodes:
    """Standard error codes for consistent error handling."""

    # Authentication & Authorization
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    AUTHORIZATION_DENIED = "AUTHORIZATION_DENIED"

    # Resource Errors
    NOT_FOUND = "NOT_FOUND"

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"

    # Invoice Lifecycle
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    LINE_ITEMS_LOCKED = "LINE_ITEMS_LOCKED"
    DUPLICATE_SUBMISSION = "DUPLICATE_SUBMISSION"

    # Settlement
    PAYMENT_FAILED = "PAYMENT_FAILED"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"

    # Remote calls
    EMAIL_DISPATCH_FAILED = "EMAIL_DISPATCH_FAILED"

    # Infrastructure
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
