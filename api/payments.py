"""Public payment page backend, addressed by invoice payment token."""

from fastapi import APIRouter
from pydantic import BaseModel

from api.base import success_response


class PayRequest(BaseModel):
    payment_method_id: str


def create_payments_router(settlement_service) -> APIRouter:
    router = APIRouter(tags=["payments"])

    @router.get("/{payment_token}")
    async def payment_summary(payment_token: str):
        summary = settlement_service.get_payment_summary(payment_token)
        return success_response(summary).model_dump(mode="json")

    @router.post("/{payment_token}")
    async def pay(payment_token: str, body: PayRequest):
        result = settlement_service.pay(payment_token, body.payment_method_id)
        return success_response(result).model_dump(mode="json")

    return router
