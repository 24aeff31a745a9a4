"""
Payment ledger.

Rows in `payments` record money received against an invoice or a booking:
manual entries from operators, processor confirmations, and per-booking
allocations of a settled invoice. Invoice balance changes live in
InvoiceService; this service only reads and appends ledger rows.
"""

import logging
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient, Transaction
from core.audit import AuditAction, AuditEntity, AuditLogger
from core.models import Payment, PaymentCreate, PaymentStatus
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_INSERT_PAYMENT = """
    INSERT INTO payments (
        id, invoice_id, booking_id, amount, status, payment_type,
        stripe_payment_id, to_platform, created_at
    ) VALUES (
        %s, %s, %s, %s, %s, %s,
        %s, %s, %s
    )
    RETURNING *
"""


def _insert_params(data: PaymentCreate) -> tuple:
    return (
        uuid4(), data.invoice_id, data.booking_id, data.amount,
        data.status.value, data.payment_type.value,
        data.stripe_payment_id, data.to_platform, now_utc(),
    )


def insert_payment(tx: Transaction, data: PaymentCreate) -> Payment:
    """Append a payment inside a caller's transaction."""
    row = tx.execute_returning(_INSERT_PAYMENT, _insert_params(data))[0]
    return Payment.model_validate(row)


class PaymentService:
    """Service for payment ledger operations."""

    def __init__(self, postgres: PostgresClient, audit: AuditLogger):
        self.postgres = postgres
        self.audit = audit

    def record(self, data: PaymentCreate) -> Payment:
        """Append a standalone payment row (not tied to an invoice balance change)."""
        row = self.postgres.execute_returning(_INSERT_PAYMENT, _insert_params(data))[0]
        payment = Payment.model_validate(row)

        self.audit.log_change(
            entity_type=AuditEntity.PAYMENT,
            entity_id=payment.id,
            action=AuditAction.CREATE,
            changes={"created": data.model_dump(mode="json", exclude_none=True)}
        )

        return payment

    def list_for_invoice(self, invoice_id: UUID) -> list[Payment]:
        """Payments against an invoice, oldest first."""
        rows = self.postgres.execute(
            """
            SELECT * FROM payments
            WHERE invoice_id = %s
            ORDER BY created_at ASC
            """,
            (invoice_id,)
        )
        return [Payment.model_validate(row) for row in rows]

    def list_for_booking(self, booking_id: UUID) -> list[Payment]:
        rows = self.postgres.execute(
            """
            SELECT * FROM payments
            WHERE booking_id = %s
            ORDER BY created_at ASC
            """,
            (booking_id,)
        )
        return [Payment.model_validate(row) for row in rows]

    def has_succeeded_payment(self, invoice_id: UUID) -> bool:
        """Whether any succeeded payment has posted against the invoice."""
        return bool(self.postgres.execute_scalar(
            """
            SELECT EXISTS (
                SELECT 1 FROM payments
                WHERE invoice_id = %s AND status = %s
            )
            """,
            (invoice_id, PaymentStatus.SUCCEEDED.value)
        ))

    def find_by_stripe_id(self, stripe_payment_id: str) -> Payment | None:
        row = self.postgres.execute_single(
            "SELECT * FROM payments WHERE stripe_payment_id = %s AND invoice_id IS NOT NULL",
            (stripe_payment_id,)
        )
        return Payment.model_validate(row) if row else None
