"""Request-scoped middleware for API requests."""

from contextvars import ContextVar
from uuid import UUID, uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

REQUEST_ID_HEADER = "X-Request-ID"

_current_request_id: ContextVar[str | None] = ContextVar("current_request_id", default=None)


def get_current_request_id() -> str | None:
    """Request id of the request being handled, if inside one."""
    return _current_request_id.get()


def _incoming_request_id(request: Request) -> str | None:
    # The dashboard proxy may already have assigned one; only trust UUIDs
    value = request.headers.get(REQUEST_ID_HEADER)
    if not value:
        return None
    try:
        return str(UUID(value))
    except ValueError:
        return None


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Assigns a request ID to every request.

    The id is echoed in the X-Request-ID response header and used as
    meta.request_id of the response envelope, so operator bug reports can be
    matched to server logs.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = _incoming_request_id(request) or str(uuid4())
        request.state.request_id = request_id
        token = _current_request_id.set(request_id)
        try:
            response = await call_next(request)
        finally:
            _current_request_id.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
