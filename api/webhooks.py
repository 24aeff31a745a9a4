"""Payment processor webhooks."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.base import success_response, error_response, ErrorCodes
from core.audit import SYSTEM_ACTOR_ID
from utils.user_context import user_context

logger = logging.getLogger(__name__)


def create_webhooks_router(settlement_service) -> APIRouter:
    router = APIRouter(tags=["webhooks"])

    @router.post("/stripe")
    async def stripe_webhook(request: Request):
        payload = await request.body()
        signature = request.headers.get("Stripe-Signature", "")

        try:
            # no operator session here; mutations are attributed to the system actor
            with user_context(SYSTEM_ACTOR_ID):
                event_type = settlement_service.handle_webhook(payload, signature)
        except ValueError as e:
            logger.warning(f"Rejected Stripe webhook: {e}")
            return JSONResponse(
                status_code=400,
                content=error_response(
                    ErrorCodes.INVALID_SIGNATURE,
                    "Invalid webhook payload or signature",
                ).model_dump(mode="json"),
            )

        return success_response({"received": True, "type": event_type}).model_dump(mode="json")

    return router
