"""
Application assembly.

`create_app` wires already-built services into a FastAPI app and is what the
tests use. `build_app` reads secrets from Vault, connects the infrastructure
clients and is the uvicorn entry point:

    uvicorn main:build_app --factory
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.actions import create_actions_router
from api.base import success_response
from api.data import create_data_router
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from api.payments import create_payments_router
from api.webhooks import create_webhooks_router
from auth.api import create_auth_router
from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.security_middleware import AuthMiddleware
from auth.service import AuthService
from auth.session import SessionManager
from clients.functions_client import FunctionsClient
from clients.identity_client import IdentityClient
from clients.postgres_client import PostgresClient
from clients.stripe_client import PaymentGatewayClient
from clients.valkey_client import ValkeyClient
from clients.vault_client import (
    get_backend_config,
    get_database_url,
    get_stripe_config,
    get_valkey_url,
)
from core.audit import AuditLogger
from core.config import BillingConfig
from core.event_bus import EventBus
from core.handlers.booking_allocation_handler import handle_invoice_paid
from core.services.catalog_service import CatalogService
from core.services.draft_service import DraftService
from core.services.invoice_service import InvoiceService
from core.services.payment_service import PaymentService
from core.services.settlement_service import SettlementService
from core.submission_guard import SubmissionGuard

logger = logging.getLogger(__name__)


def build_services(
    postgres: PostgresClient,
    valkey: ValkeyClient,
    functions: FunctionsClient,
    gateway: PaymentGatewayClient,
    config: BillingConfig | None = None,
) -> dict:
    """Construct the billing services and subscribe event handlers."""
    config = config or BillingConfig()

    audit = AuditLogger(postgres)
    event_bus = EventBus()
    catalog = CatalogService(postgres)
    payments = PaymentService(postgres, audit)
    guard = SubmissionGuard(valkey, config.submission_guard_seconds)

    invoices = InvoiceService(
        postgres,
        audit,
        event_bus,
        catalog,
        payments,
        functions,
        config=config,
        submission_guard=guard,
    )

    event_bus.subscribe("InvoicePaid", handle_invoice_paid(payments))

    return {
        "invoice": invoices,
        "draft": DraftService(valkey, catalog, invoices, config),
        "catalog": catalog,
        "payment": payments,
        "settlement": SettlementService(invoices, gateway, submission_guard=guard),
        "event_bus": event_bus,
    }


def create_app(
    services: dict,
    session_manager: SessionManager,
    auth_service: AuthService,
    auth_config: AuthConfig | None = None,
    lifespan=None,
) -> FastAPI:
    """FastAPI app with auth middleware, error handlers and all routes."""
    app = FastAPI(title="Marketplace Billing", lifespan=lifespan)
    app.add_middleware(AuthMiddleware, session_manager=session_manager)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_data_router(services), prefix="/api")
    app.include_router(create_actions_router(services), prefix="/api")
    app.include_router(create_auth_router(auth_service, auth_config), prefix="/auth")
    app.include_router(create_payments_router(services["settlement"]), prefix="/pay")
    app.include_router(create_webhooks_router(services["settlement"]), prefix="/webhooks")

    @app.get("/health")
    async def health():
        return success_response({"status": "ok"}).model_dump(mode="json")

    return app


def build_app() -> FastAPI:
    """Production app: secrets from Vault, live clients."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    billing_config = BillingConfig()
    auth_config = AuthConfig()

    postgres = PostgresClient(get_database_url())
    valkey = ValkeyClient(get_valkey_url())
    backend = get_backend_config()
    stripe_keys = get_stripe_config()

    functions = FunctionsClient(backend["url"], backend["anon_key"])
    identity = IdentityClient(backend["url"], backend["anon_key"])
    gateway = PaymentGatewayClient(
        stripe_keys["secret_key"],
        stripe_keys["webhook_secret"],
        currency=billing_config.currency,
    )

    services = build_services(postgres, valkey, functions, gateway, billing_config)
    session_manager = SessionManager(valkey, auth_config)
    auth_service = AuthService(auth_config, AuthDatabase(postgres), session_manager, identity)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Billing service started")
        yield
        postgres.close()
        valkey.close()
        logger.info("Billing service stopped")

    return create_app(services, session_manager, auth_service, auth_config, lifespan=lifespan)
