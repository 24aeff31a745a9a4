"""Tests for PaymentService - the payments ledger."""

from unittest.mock import Mock
from uuid import uuid4

import pytest

from core.audit import AuditAction, AuditLogger
from core.models import PaymentCreate, PaymentStatus, PaymentType
from core.services.payment_service import PaymentService, insert_payment
from utils.timezone import now_utc


@pytest.fixture
def audit():
    return Mock(spec=AuditLogger)


@pytest.fixture
def service(db, audit):
    return PaymentService(db, audit)


def _row(**overrides) -> dict:
    row = {
        "id": uuid4(),
        "invoice_id": uuid4(),
        "booking_id": None,
        "amount": 4000,
        "status": "succeeded",
        "payment_type": "other",
        "stripe_payment_id": None,
        "to_platform": True,
        "created_at": now_utc(),
    }
    row.update(overrides)
    return row


class TestRecord:

    def test_inserts_and_audits(self, service, db, audit):
        booking_id = uuid4()
        db.execute_returning.return_value = [_row(invoice_id=None, booking_id=booking_id, to_platform=False)]

        payment = service.record(PaymentCreate(booking_id=booking_id, amount=4000, to_platform=False))

        params = db.execute_returning.call_args.args[1]
        assert params[1] is None
        assert params[2] == booking_id
        assert params[7] is False
        assert payment.booking_id == booking_id
        assert audit.log_change.call_args.kwargs["action"] == AuditAction.CREATE

    def test_insert_payment_uses_transaction(self, tx):
        tx.execute_returning.return_value = [_row(payment_type="balance")]

        payment = insert_payment(tx, PaymentCreate(
            invoice_id=uuid4(), amount=4000, payment_type=PaymentType.BALANCE
        ))

        assert payment.payment_type == PaymentType.BALANCE
        assert "INSERT INTO payments" in tx.execute_returning.call_args.args[0]


class TestQueries:

    def test_list_for_invoice(self, service, db):
        invoice_id = uuid4()
        db.execute.return_value = [_row(invoice_id=invoice_id), _row(invoice_id=invoice_id)]

        payments = service.list_for_invoice(invoice_id)

        assert len(payments) == 2
        assert all(p.succeeded for p in payments)

    def test_list_for_booking(self, service, db):
        db.execute.return_value = []

        assert service.list_for_booking(uuid4()) == []
        assert "WHERE booking_id = %s" in db.execute.call_args.args[0]

    @pytest.mark.parametrize("exists", [True, False])
    def test_has_succeeded_payment(self, service, db, exists):
        invoice_id = uuid4()
        db.execute_scalar.return_value = exists

        assert service.has_succeeded_payment(invoice_id) is exists
        assert db.execute_scalar.call_args.args[1] == (invoice_id, PaymentStatus.SUCCEEDED.value)

    def test_find_by_stripe_id(self, service, db):
        db.execute_single.return_value = _row(stripe_payment_id="pi_1")

        assert service.find_by_stripe_id("pi_1").stripe_payment_id == "pi_1"
