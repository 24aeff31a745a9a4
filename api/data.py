"""GET /api/data: unified read endpoint."""

from uuid import UUID

from fastapi import APIRouter, Query, Request
from fastapi.encoders import jsonable_encoder

from api.base import success_response
from core.models import InvoiceStatus


VALID_TYPES = {
    "invoices", "service_packages", "store_products",
    "vendors", "couples", "bookings", "drafts",
}


def _dump_all(rows) -> dict:
    return success_response([r.model_dump(mode="json") for r in rows]).model_dump(mode="json")


def create_data_router(services: dict) -> APIRouter:
    router = APIRouter()

    invoice_svc = services["invoice"]
    catalog_svc = services["catalog"]
    draft_svc = services["draft"]

    @router.get("/data")
    async def get_data(
        request: Request,
        type: str | None = Query(None),
        id: str | None = Query(None),
        search: str | None = Query(None),
        couple_id: str | None = Query(None),
        include: str | None = Query(None),
        filter: str | None = Query(None),
        limit: int = Query(50, ge=1, le=500),
    ):
        if type is None:
            raise ValueError("'type' query parameter is required")

        if type not in VALID_TYPES:
            raise ValueError(f"Unknown type '{type}'. Valid types: {', '.join(sorted(VALID_TYPES))}")

        includes = set(include.split(",")) if include else set()

        if type == "invoices":
            return _handle_invoices(invoice_svc, id, filter, search, includes, limit)

        if type == "service_packages":
            return _dump_all(catalog_svc.list_service_packages())

        if type == "store_products":
            return _dump_all(catalog_svc.list_store_products())

        if type == "vendors":
            return _dump_all(catalog_svc.list_vendors())

        if type == "couples":
            return _dump_all(catalog_svc.list_couples())

        if type == "bookings":
            return _handle_bookings(catalog_svc, couple_id)

        if type == "drafts":
            return _handle_drafts(draft_svc, id)

    return router


def _handle_invoices(invoice_svc, id, filter, search, includes, limit):
    if id:
        invoice = invoice_svc.get_by_id(UUID(id))
        if invoice is None:
            raise ValueError(f"Invoice {id} not found")

        data = invoice.model_dump(mode="json")
        data["payment_link"] = invoice_svc.payment_link(invoice)
        if "line_items" in includes:
            items = invoice_svc.get_line_items(invoice.id)
            data["line_items"] = [li.model_dump(mode="json") for li in items]
        if "payments" in includes:
            payments = invoice_svc.get_payments(invoice.id)
            data["payments"] = [p.model_dump(mode="json") for p in payments]
        if "history" in includes:
            data["history"] = jsonable_encoder(invoice_svc.get_history(invoice.id))

        return success_response(data).model_dump(mode="json")

    status = InvoiceStatus(filter) if filter and filter != "all" else None
    return _dump_all(invoice_svc.list_invoices(status=status, search=search, limit=limit))


def _handle_bookings(catalog_svc, couple_id):
    if not couple_id:
        raise ValueError("'bookings' type requires 'couple_id' parameter")
    return _dump_all(catalog_svc.list_bookings_for_couple(UUID(couple_id)))


def _handle_drafts(draft_svc, id):
    if not id:
        raise ValueError("'drafts' type requires 'id' parameter")
    return success_response(draft_svc.get(UUID(id))).model_dump(mode="json")
