"""POST /api/actions: unified mutation endpoint."""

from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel

from api.base import success_response
from core.billing import parse_amount
from core.models import (
    InvoiceCreate,
    InvoiceLineItemsUpdate,
    PaymentType,
    RecipientType,
)


class ActionRequest(BaseModel):
    domain: str
    action: str
    data: dict


def create_actions_router(services: dict) -> APIRouter:
    router = APIRouter()

    handlers = {
        "invoice": InvoiceHandler(services["invoice"]),
        "draft": DraftHandler(services["draft"]),
    }

    @router.post("/actions")
    async def perform_action(request: Request, body: ActionRequest):
        handler = handlers.get(body.domain)
        if handler is None:
            raise ValueError(
                f"Unknown domain '{body.domain}'. "
                f"Valid domains: {', '.join(sorted(handlers.keys()))}"
            )

        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on '{body.domain}'. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        method = getattr(handler, f"_handle_{body.action}")
        result = method(dict(body.data))
        return success_response(result).model_dump(mode="json")

    return router


def _require_id(data: dict, key: str = "id") -> UUID:
    value = data.pop(key, None)
    if not value:
        raise ValueError(f"'{key}' is required")
    return UUID(str(value))


def _amount_cents(data: dict) -> int:
    """Accepts integer cents or a typed dollar amount such as "$1,250.50"."""
    if "amount_cents" in data:
        return int(data["amount_cents"])
    if "amount" in data:
        return parse_amount(data["amount"])
    raise ValueError("'amount_cents' or 'amount' is required")


# =============================================================================
# HANDLER CLASSES
# =============================================================================


class InvoiceHandler:
    ALLOWED_ACTIONS = {"create", "update_line_items", "send", "record_payment", "payment_link"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        submission_key = data.pop("submission_key", None)
        invoice = self.service.create(InvoiceCreate(**data), submission_key=submission_key)
        return invoice.model_dump(mode="json")

    def _handle_update_line_items(self, data: dict):
        invoice_id = _require_id(data)
        invoice = self.service.update_line_items(invoice_id, InvoiceLineItemsUpdate(**data))
        return invoice.model_dump(mode="json")

    def _handle_send(self, data: dict):
        invoice = self.service.send(_require_id(data))
        return invoice.model_dump(mode="json")

    def _handle_record_payment(self, data: dict):
        invoice_id = _require_id(data)
        payment_type = PaymentType(data.get("payment_type", PaymentType.OTHER.value))
        invoice = self.service.record_payment(invoice_id, _amount_cents(data), payment_type)
        return invoice.model_dump(mode="json")

    def _handle_payment_link(self, data: dict):
        invoice_id = _require_id(data)
        invoice = self.service.get_by_id(invoice_id)
        if invoice is None:
            raise ValueError(f"Invoice {invoice_id} not found")
        return {"id": str(invoice.id), "payment_link": self.service.payment_link(invoice)}


class DraftHandler:
    ALLOWED_ACTIONS = {
        "start", "set_recipient",
        "add_line_item", "update_line_item", "remove_line_item",
        "set_discount_mode", "set_discount_value", "set_deposit",
        "discard", "submit",
    }

    def __init__(self, service):
        self.service = service

    def _handle_start(self, data: dict):
        recipient_id = data.get("recipient_id")
        return self.service.start(
            RecipientType(data.get("recipient_type", RecipientType.COUPLE.value)),
            UUID(recipient_id) if recipient_id else None,
        )

    def _handle_set_recipient(self, data: dict):
        recipient_id = data.get("recipient_id")
        return self.service.set_recipient(
            _require_id(data),
            RecipientType(data["recipient_type"]),
            UUID(recipient_id) if recipient_id else None,
        )

    def _handle_add_line_item(self, data: dict):
        return self.service.add_line_item(
            _require_id(data), data["type"], bool(data.get("from_booking", False))
        )

    def _handle_update_line_item(self, data: dict):
        return self.service.update_line_item(
            _require_id(data), int(data["index"]), data["field"], data.get("value")
        )

    def _handle_remove_line_item(self, data: dict):
        return self.service.remove_line_item(_require_id(data), int(data["index"]))

    def _handle_set_discount_mode(self, data: dict):
        return self.service.set_discount_mode(_require_id(data), data["mode"])

    def _handle_set_discount_value(self, data: dict):
        return self.service.set_discount_value(_require_id(data), data.get("value"))

    def _handle_set_deposit(self, data: dict):
        return self.service.set_deposit(_require_id(data), data.get("percentage"))

    def _handle_discard(self, data: dict):
        draft_id = _require_id(data)
        if not self.service.discard(draft_id):
            raise ValueError(f"Draft {draft_id} not found")
        return {"deleted": True}

    def _handle_submit(self, data: dict):
        invoice = self.service.submit(_require_id(data))
        return invoice.model_dump(mode="json")
