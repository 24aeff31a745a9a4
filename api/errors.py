"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from clients.functions_client import FunctionAuthError, FunctionCallError
from clients.stripe_client import PaymentGatewayError
from core.exceptions import (
    DuplicateSubmissionError,
    InvalidStatusTransitionError,
    InvoiceValidationError,
    LineItemsLockedError,
    PaymentFailedError,
)

logger = logging.getLogger(__name__)


def _json(status_code: int, code: str, message: str, details: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_response(code, message, details).model_dump(mode="json"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(InvoiceValidationError)
    async def invoice_validation_handler(request: Request, exc: InvoiceValidationError):
        return _json(
            400,
            ErrorCodes.VALIDATION_ERROR,
            str(exc),
            {"rule": exc.rule, "item_index": exc.item_index},
        )

    @app.exception_handler(InvalidStatusTransitionError)
    async def status_transition_handler(request: Request, exc: InvalidStatusTransitionError):
        return _json(409, ErrorCodes.INVALID_STATUS_TRANSITION, str(exc))

    @app.exception_handler(LineItemsLockedError)
    async def line_items_locked_handler(request: Request, exc: LineItemsLockedError):
        return _json(409, ErrorCodes.LINE_ITEMS_LOCKED, str(exc))

    @app.exception_handler(DuplicateSubmissionError)
    async def duplicate_submission_handler(request: Request, exc: DuplicateSubmissionError):
        return _json(409, ErrorCodes.DUPLICATE_SUBMISSION, "This invoice is already being submitted")

    @app.exception_handler(PaymentFailedError)
    async def payment_failed_handler(request: Request, exc: PaymentFailedError):
        return _json(402, ErrorCodes.PAYMENT_FAILED, str(exc))

    @app.exception_handler(FunctionAuthError)
    async def function_auth_handler(request: Request, exc: FunctionAuthError):
        return _json(401, ErrorCodes.SESSION_EXPIRED, "Your sign-in has expired. Please sign in again.")

    @app.exception_handler(FunctionCallError)
    async def function_call_handler(request: Request, exc: FunctionCallError):
        return _json(502, ErrorCodes.EMAIL_DISPATCH_FAILED, str(exc))

    @app.exception_handler(PaymentGatewayError)
    async def gateway_error_handler(request: Request, exc: PaymentGatewayError):
        return _json(502, ErrorCodes.SERVICE_UNAVAILABLE, "Payment processor unavailable")

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        message = str(exc)
        if "not found" in message.lower():
            return _json(404, ErrorCodes.NOT_FOUND, message)
        return _json(400, ErrorCodes.INVALID_REQUEST, message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _json(422, ErrorCodes.VALIDATION_ERROR, str(exc.errors()))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return _json(500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred")
