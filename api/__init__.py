"""API modules for HTTP interface."""

from api.base import (
    APIError,
    APIMeta,
    APIResponse,
    success_response,
    error_response,
    ErrorCodes,
)
from api.actions import create_actions_router
from api.data import create_data_router
from api.payments import create_payments_router
from api.webhooks import create_webhooks_router
