"""Tests for core domain models - custom validators and derived properties only."""

import pytest
from pydantic import TypeAdapter, ValidationError
from uuid import uuid4


class TestLineItemDraft:
    """Tests for LineItemDraft constraints and properties."""

    def test_defaults(self):
        from core.models import LineItemDraft, LineItemType

        item = LineItemDraft(type=LineItemType.CUSTOM)

        assert item.quantity == 1
        assert item.custom_price == 0
        assert item.custom_description == ""

    def test_rejects_zero_quantity(self):
        from core.models import LineItemDraft

        with pytest.raises(ValidationError):
            LineItemDraft(type="custom", quantity=0)

    def test_rejects_negative_price(self):
        from core.models import LineItemDraft

        with pytest.raises(ValidationError):
            LineItemDraft(type="custom", custom_price=-1)

    def test_line_total(self):
        from core.models import LineItemDraft

        assert LineItemDraft(type="custom", custom_price=5000, quantity=3).line_total == 15000

    def test_booking_linked_only_for_packages_with_booking(self):
        from core.models import LineItemDraft

        assert LineItemDraft(type="service_package", booking_id=uuid4()).is_booking_linked
        assert not LineItemDraft(type="service_package", service_package_id=uuid4()).is_booking_linked

    def test_pending_booking_selection_holds_slot(self):
        from core.models import LineItemDraft

        item = LineItemDraft(type="service_package", from_booking=True)

        assert not item.is_booking_linked
        assert item.holds_booking_slot


class TestInvoiceLineItem:

    def test_to_draft_keeps_id_and_marks_bookings(self, line_item_factory):
        from core.models import LineItemType

        booking_id = uuid4()
        stored = line_item_factory(
            uuid4(), type=LineItemType.SERVICE_PACKAGE, booking_id=booking_id, custom_description=None
        )

        draft = stored.to_draft()

        assert draft.id == stored.id
        assert draft.booking_id == booking_id
        assert draft.from_booking is True
        assert draft.custom_description == ""


class TestDiscount:
    """Discount union and its two stored columns."""

    def test_union_discriminates_on_mode(self):
        from core.models import Discount, PercentageDiscount

        discount = TypeAdapter(Discount).validate_python({"mode": "percentage", "percentage": 10})

        assert discount == PercentageDiscount(percentage=10)

    def test_percentage_above_100_allowed(self):
        from core.models import PercentageDiscount

        assert PercentageDiscount(percentage=150).percentage == 150

    def test_negative_flat_rejected(self):
        from core.models import FlatDiscount

        with pytest.raises(ValidationError):
            FlatDiscount(amount_cents=-1)

    def test_to_columns_zeroes_inactive(self):
        from core.models import FlatDiscount, PercentageDiscount, discount_to_columns

        assert discount_to_columns(FlatDiscount(amount_cents=2500)) == (2500, 0)
        assert discount_to_columns(PercentageDiscount(percentage=15)) == (0, 15)

    def test_from_columns(self):
        from core.models import FlatDiscount, PercentageDiscount, discount_from_columns

        assert discount_from_columns(0, 15) == PercentageDiscount(percentage=15)
        assert discount_from_columns(2500, 0) == FlatDiscount(amount_cents=2500)
        assert discount_from_columns(None, 0) == FlatDiscount()


class TestInvoiceCreate:
    """Tests for InvoiceCreate custom validators."""

    def test_couple_invoice_rejects_vendor_id(self):
        from core.models import InvoiceCreate

        with pytest.raises(ValidationError, match="Couple invoices cannot carry a vendor_id"):
            InvoiceCreate(recipient_type="couple", couple_id=uuid4(), vendor_id=uuid4())

    def test_vendor_invoice_rejects_couple_id(self):
        from core.models import InvoiceCreate

        with pytest.raises(ValidationError, match="Vendor invoices cannot carry a couple_id"):
            InvoiceCreate(recipient_type="vendor", vendor_id=uuid4(), couple_id=uuid4())

    def test_recipient_id_follows_type(self):
        from core.models import InvoiceCreate

        vendor_id = uuid4()

        assert InvoiceCreate(recipient_type="vendor", vendor_id=vendor_id).recipient_id == vendor_id

    def test_deposit_bounds(self):
        from core.models import InvoiceCreate

        with pytest.raises(ValidationError):
            InvoiceCreate(recipient_type="couple", deposit_percentage=101)

    def test_missing_recipient_id_left_to_composition_rules(self):
        from core.models import InvoiceCreate

        assert InvoiceCreate(recipient_type="couple").recipient_id is None

    def test_discount_from_json(self):
        from core.models import InvoiceCreate, PercentageDiscount

        data = InvoiceCreate.model_validate({
            "recipient_type": "couple",
            "discount": {"mode": "percentage", "percentage": 20},
        })

        assert data.discount == PercentageDiscount(percentage=20)


class TestInvoice:

    def test_discount_property_reads_columns(self, invoice_factory):
        from core.models import PercentageDiscount

        invoice = invoice_factory(discount_amount=0, discount_percentage=10)

        assert invoice.discount == PercentageDiscount(percentage=10)

    def test_is_paid(self, invoice_factory):
        from core.models import InvoiceStatus

        assert invoice_factory(status=InvoiceStatus.PAID).is_paid
        assert not invoice_factory(status=InvoiceStatus.SENT).is_paid

    def test_total_amount_dollars(self, invoice_factory):
        assert invoice_factory(total_amount=17550).total_amount_dollars == 175.5


class TestPaymentCreate:

    def test_requires_invoice_or_booking(self):
        from core.models import PaymentCreate

        with pytest.raises(ValidationError, match="invoice_id or a booking_id"):
            PaymentCreate(amount=100)

    def test_amount_must_be_positive(self):
        from core.models import PaymentCreate

        with pytest.raises(ValidationError):
            PaymentCreate(invoice_id=uuid4(), amount=0)

    def test_booking_payment(self):
        from core.models import PaymentCreate, PaymentStatus, PaymentType

        payment = PaymentCreate(booking_id=uuid4(), amount=500, to_platform=False)

        assert payment.status == PaymentStatus.SUCCEEDED
        assert payment.payment_type == PaymentType.OTHER
        assert payment.to_platform is False


class TestCatalogLookup:

    def test_from_rows_indexes_by_id(self, package, product, booking, vendor):
        from core.models import CatalogLookup

        lookup = CatalogLookup.from_rows([package], [product], [booking], [vendor])

        assert lookup.package(package.id) is package
        assert lookup.product(product.id) is product
        assert lookup.booking(booking.id) is booking
        assert lookup.vendor(vendor.id) is vendor
        assert lookup.package(uuid4()) is None


class TestCouple:

    def test_display_name(self, couple):
        from core.models import Couple

        assert couple.display_name == "Ava & Noah"
        assert Couple(id=uuid4(), partner1_name="Sam").display_name == "Sam"
