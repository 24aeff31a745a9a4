"""Tests for DraftService - invoice composition kept in Valkey."""

import json
from unittest.mock import Mock
from uuid import UUID, uuid4

import pytest

from core.config import BillingConfig
from core.exceptions import InvoiceValidationError
from core.models import CatalogLookup, InvoiceCreate, RecipientType
from core.services.catalog_service import CatalogService
from core.services.draft_service import DraftService
from core.services.invoice_service import InvoiceService


@pytest.fixture
def lookup(package, product, booking, vendor):
    return CatalogLookup.from_rows(
        packages=[package], products=[product], bookings=[booking], vendors=[vendor]
    )


@pytest.fixture
def catalog(lookup):
    mock = Mock(spec=CatalogService)
    mock.build_lookup.return_value = lookup
    return mock


@pytest.fixture
def invoices(invoice_factory):
    mock = Mock(spec=InvoiceService)
    mock.create.return_value = invoice_factory()
    return mock


@pytest.fixture
def service(valkey, catalog, invoices):
    return DraftService(valkey, catalog, invoices, BillingConfig(draft_ttl_hours=2))


@pytest.fixture
def draft(service, couple):
    return service.start(RecipientType.COUPLE, couple.id)


def _id(draft: dict) -> UUID:
    return UUID(draft["id"])


class TestLifecycle:

    def test_start_stores_state_with_ttl(self, service, valkey, couple):
        draft = service.start(RecipientType.COUPLE, couple.id)

        key = f"invoice_draft:{draft['id']}"
        assert json.loads(valkey.data[key])["recipient_id"] == str(couple.id)
        assert valkey.expiry[key] == 7200

    def test_view_includes_totals(self, draft):
        assert draft["totals"] == {
            "subtotal": 0, "discount": 0, "total": 0, "deposit": 0, "remaining": 0,
        }
        assert draft["line_items"] == []

    def test_get_unknown_draft(self, service):
        with pytest.raises(ValueError, match="not found"):
            service.get(uuid4())

    def test_discard(self, service, draft, valkey):
        assert service.discard(_id(draft)) is True
        assert service.discard(_id(draft)) is False


class TestBuilderOperations:
    """Each operation loads, changes and re-saves the composer."""

    def test_add_and_update_custom_item(self, service, draft):
        draft_id = _id(draft)

        service.add_line_item(draft_id, "custom")
        service.update_line_item(draft_id, 0, "custom_description", "Travel fee")
        view = service.update_line_item(draft_id, 0, "custom_price", 7500)

        assert view["line_items"][0]["custom_price"] == 7500
        assert view["totals"]["total"] == 7500
        assert service.get(draft_id)["line_items"][0]["custom_description"] == "Travel fee"

    def test_reference_selection_fetches_selected_row(self, service, draft, catalog, booking):
        draft_id = _id(draft)
        service.add_line_item(draft_id, "service_package", from_booking=True)

        view = service.update_line_item(draft_id, 0, "booking_id", str(booking.id))

        assert catalog.build_lookup.call_args.kwargs["booking_ids"] == [booking.id]
        assert view["line_items"][0]["custom_price"] == 50000

    def test_discount_and_deposit(self, service, draft):
        draft_id = _id(draft)
        service.add_line_item(draft_id, "custom")
        service.update_line_item(draft_id, 0, "custom_description", "Planning")
        service.update_line_item(draft_id, 0, "custom_price", 20000)

        service.set_discount_mode(draft_id, "percentage")
        service.set_discount_value(draft_id, 10)
        view = service.set_deposit(draft_id, 50)

        assert view["totals"] == {
            "subtotal": 20000, "discount": 2000, "total": 18000, "deposit": 9000, "remaining": 9000,
        }

    def test_set_recipient_type_clears_items(self, service, draft):
        draft_id = _id(draft)
        service.add_line_item(draft_id, "custom")

        view = service.set_recipient(draft_id, RecipientType.VENDOR, uuid4())

        assert view["recipient_type"] == "vendor"
        assert view["line_items"] == []

    def test_failed_operation_leaves_draft_unchanged(self, service, draft):
        draft_id = _id(draft)
        service.add_line_item(draft_id, "custom")

        with pytest.raises(InvoiceValidationError):
            service.update_line_item(draft_id, 0, "quantity", 0)

        assert service.get(draft_id)["line_items"][0]["quantity"] == 1

    def test_remove_line_item(self, service, draft):
        draft_id = _id(draft)
        service.add_line_item(draft_id, "custom")

        assert service.remove_line_item(draft_id, 0)["line_items"] == []


class TestSubmit:

    def test_submit_creates_invoice_and_drops_draft(self, service, draft, invoices, valkey):
        draft_id = _id(draft)
        service.add_line_item(draft_id, "custom")
        service.update_line_item(draft_id, 0, "custom_description", "Travel fee")
        service.update_line_item(draft_id, 0, "custom_price", 7500)

        invoice = service.submit(draft_id)

        request, = invoices.create.call_args.args
        assert isinstance(request, InvoiceCreate)
        assert invoices.create.call_args.kwargs["submission_key"] == f"draft:{draft_id}"
        assert invoice == invoices.create.return_value
        assert f"invoice_draft:{draft_id}" not in valkey.data

    def test_invalid_draft_not_submitted(self, service, draft, invoices):
        with pytest.raises(InvoiceValidationError):
            service.submit(_id(draft))

        invoices.create.assert_not_called()

    def test_failed_create_keeps_draft(self, service, draft, invoices, valkey):
        draft_id = _id(draft)
        service.add_line_item(draft_id, "custom")
        service.update_line_item(draft_id, 0, "custom_description", "Travel fee")
        service.update_line_item(draft_id, 0, "custom_price", 7500)
        invoices.create.side_effect = RuntimeError("database down")

        with pytest.raises(RuntimeError):
            service.submit(draft_id)

        assert f"invoice_draft:{draft_id}" in valkey.data
