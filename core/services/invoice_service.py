"""
Invoice service: persistence and lifecycle.

An invoice and its line items are written in one database transaction, so a
reader never sees an invoice without its items. Totals always come from
core.billing.compute_totals. Status moves draft -> sent -> paid; paid is
terminal and there is no way back to draft.
"""

import logging
import secrets
from contextlib import nullcontext
from uuid import UUID, uuid4

from clients.functions_client import FunctionsClient
from clients.postgres_client import PostgresClient, Transaction
from core import validation
from core.audit import AuditAction, AuditEntity, AuditLogger, compute_changes
from core.billing import compute_totals
from core.config import BillingConfig
from core.event_bus import EventBus
from core.events import InvoiceCreated, InvoicePaid, InvoiceSent
from core.exceptions import InvalidStatusTransitionError, LineItemsLockedError
from core.models import (
    Invoice,
    InvoiceCreate,
    InvoiceLineItem,
    InvoiceLineItemsUpdate,
    InvoiceStatus,
    LineItemDraft,
    Payment,
    PaymentCreate,
    PaymentStatus,
    PaymentType,
    discount_to_columns,
)
from core.services.catalog_service import CatalogService
from core.services.payment_service import PaymentService, insert_payment
from core.submission_guard import SubmissionGuard
from utils.timezone import now_utc
from utils.user_context import get_current_access_token

logger = logging.getLogger(__name__)

_INSERT_LINE_ITEMS = """
    INSERT INTO invoice_line_items (
        id, invoice_id, type,
        service_package_id, store_product_id, booking_id,
        custom_description, custom_price, quantity,
        vendor_id, stripe_account_id, created_at
    ) VALUES %s
    RETURNING *
"""


def _line_item_row(invoice_id: UUID, item: LineItemDraft, created_at) -> tuple:
    return (
        uuid4(), invoice_id, item.type.value,
        item.service_package_id, item.store_product_id, item.booking_id,
        item.custom_description or None, item.custom_price, item.quantity,
        item.vendor_id, item.stripe_account_id, created_at,
    )


class InvoiceService:
    """Service for invoice operations."""

    def __init__(
        self,
        postgres: PostgresClient,
        audit: AuditLogger,
        event_bus: EventBus,
        catalog: CatalogService,
        payments: PaymentService,
        functions: FunctionsClient,
        config: BillingConfig | None = None,
        submission_guard: SubmissionGuard | None = None,
    ):
        self.postgres = postgres
        self.audit = audit
        self.event_bus = event_bus
        self.catalog = catalog
        self.payments = payments
        self.functions = functions
        self.config = config or BillingConfig()
        self.submission_guard = submission_guard

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    def create(self, data: InvoiceCreate, submission_key: str | None = None) -> Invoice:
        """
        Create a draft invoice with its line items.

        Package and product prices are re-read from the catalog and booking
        items are routed to the booking's vendor, whatever the request says.

        Args:
            data: Recipient, line items, discount and deposit
            submission_key: Optional key that rejects a repeated submit

        Returns:
            Created invoice in DRAFT status

        Raises:
            InvoiceValidationError: A composition rule failed (nothing written)
            DuplicateSubmissionError: submission_key already used
        """
        validation.validate_composition(
            data.recipient_type, data.recipient_id, data.line_items, self.config.max_booking_items
        )
        lookup = self.catalog.build_lookup(data.line_items)
        validation.validate_references(
            data.recipient_type, data.recipient_id, data.line_items, lookup
        )
        items = validation.resolve_line_items(data.line_items, lookup)

        totals = compute_totals(items, data.discount, data.deposit_percentage)
        discount_amount, discount_percentage = discount_to_columns(data.discount)

        guard = self.submission_guard
        if submission_key is not None and guard is None:
            logger.warning("submission_key given but no submission guard configured")

        with guard.hold(submission_key) if guard else nullcontext():
            now = now_utc()
            with self.postgres.transaction() as tx:
                row = tx.execute_returning(
                    """
                    INSERT INTO invoices (
                        id, recipient_type, couple_id, vendor_id,
                        total_amount, remaining_balance,
                        discount_amount, discount_percentage,
                        deposit_percentage, deposit_amount,
                        status, payment_token,
                        created_at, updated_at
                    ) VALUES (
                        %s, %s, %s, %s,
                        %s, %s,
                        %s, %s,
                        %s, %s,
                        %s, %s,
                        %s, %s
                    )
                    RETURNING *
                    """,
                    (
                        uuid4(), data.recipient_type.value, data.couple_id, data.vendor_id,
                        totals.total, totals.remaining,
                        discount_amount, discount_percentage,
                        data.deposit_percentage, totals.deposit,
                        InvoiceStatus.DRAFT.value, secrets.token_urlsafe(24),
                        now, now,
                    )
                )[0]
                invoice = Invoice.model_validate(row)

                item_rows = tx.insert_many(
                    _INSERT_LINE_ITEMS,
                    [_line_item_row(invoice.id, item, now) for item in items],
                )
                line_items = [InvoiceLineItem.model_validate(r) for r in item_rows]

        self.audit.log_change(
            entity_type=AuditEntity.INVOICE,
            entity_id=invoice.id,
            action=AuditAction.CREATE,
            changes={
                "created": {
                    "recipient_type": invoice.recipient_type.value,
                    "recipient_id": str(invoice.recipient_id),
                    "line_items": len(line_items),
                    "total_amount": invoice.total_amount,
                    "deposit_amount": invoice.deposit_amount,
                    "remaining_balance": invoice.remaining_balance,
                }
            }
        )

        logger.info(
            f"Invoice {invoice.id} created for {invoice.recipient_type.value} "
            f"{invoice.recipient_id}: total={invoice.total_amount}"
        )
        self.event_bus.publish(InvoiceCreated.create(invoice=invoice, line_items=line_items))

        return invoice

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_by_id(self, invoice_id: UUID) -> Invoice | None:
        row = self.postgres.execute_single(
            "SELECT * FROM invoices WHERE id = %s",
            (invoice_id,)
        )
        return Invoice.model_validate(row) if row else None

    def get_by_token(self, payment_token: str) -> Invoice | None:
        row = self.postgres.execute_single(
            "SELECT * FROM invoices WHERE payment_token = %s",
            (payment_token,)
        )
        return Invoice.model_validate(row) if row else None

    def _require(self, invoice_id: UUID) -> Invoice:
        invoice = self.get_by_id(invoice_id)
        if invoice is None:
            raise ValueError(f"Invoice {invoice_id} not found")
        return invoice

    def list_invoices(
        self,
        status: InvoiceStatus | None = None,
        search: str | None = None,
        limit: int = 50,
    ) -> list[Invoice]:
        """
        List invoices newest first.

        Args:
            status: Only invoices in this status
            search: Case-insensitive match on couple partner names or vendor name
            limit: Maximum results
        """
        conditions = []
        params: list = []

        if status is not None:
            conditions.append("i.status = %s")
            params.append(InvoiceStatus(status).value)

        if search:
            pattern = f"%{search.strip()}%"
            conditions.append(
                "(c.partner1_name ILIKE %s OR c.partner2_name ILIKE %s OR v.name ILIKE %s)"
            )
            params.extend([pattern, pattern, pattern])

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        params.append(limit)

        rows = self.postgres.execute(
            f"""
            SELECT i.* FROM invoices i
            LEFT JOIN couples c ON c.id = i.couple_id
            LEFT JOIN vendors v ON v.id = i.vendor_id
            {where}
            ORDER BY i.created_at DESC
            LIMIT %s
            """,
            tuple(params)
        )
        return [Invoice.model_validate(row) for row in rows]

    def get_line_items(self, invoice_id: UUID) -> list[InvoiceLineItem]:
        """Line items in the order they were added."""
        rows = self.postgres.execute(
            """
            SELECT * FROM invoice_line_items
            WHERE invoice_id = %s
            ORDER BY created_at ASC, id ASC
            """,
            (invoice_id,)
        )
        return [InvoiceLineItem.model_validate(row) for row in rows]

    def get_payments(self, invoice_id: UUID) -> list[Payment]:
        return self.payments.list_for_invoice(invoice_id)

    def get_history(self, invoice_id: UUID) -> list[dict]:
        """Audit entries for the invoice, newest first."""
        return self.audit.get_entity_history(AuditEntity.INVOICE, invoice_id)

    def payment_link(self, invoice: Invoice) -> str:
        """Public URL where the recipient pays. Pure; same invoice, same link."""
        base = self.config.app_base_url.rstrip("/")
        path = "/" + self.config.payment_link_path.strip("/")
        return f"{base}{path}/{invoice.payment_token}"

    # -------------------------------------------------------------------------
    # Send
    # -------------------------------------------------------------------------

    def send(self, invoice_id: UUID, access_token: str | None = None) -> Invoice:
        """
        Email the invoice to its recipient and mark it sent.

        A sent invoice can be sent again; sent_at is re-stamped.

        Raises:
            ValueError: Invoice not found
            InvalidStatusTransitionError: Invoice already paid
            FunctionAuthError: Backend rejected the operator's access token
            FunctionCallError: Email dispatch failed (status unchanged)
        """
        current = self._require(invoice_id)
        if current.status == InvoiceStatus.PAID:
            raise InvalidStatusTransitionError(invoice_id, current.status.value, "send")

        self.functions.send_invoice_email(
            invoice_id, access_token or get_current_access_token()
        )

        now = now_utc()
        row = self.postgres.execute_returning(
            """
            UPDATE invoices
            SET status = %s, sent_at = %s, updated_at = %s
            WHERE id = %s
            RETURNING *
            """,
            (InvoiceStatus.SENT.value, now, now, invoice_id)
        )[0]
        updated = Invoice.model_validate(row)

        self.audit.log_change(
            entity_type=AuditEntity.INVOICE,
            entity_id=invoice_id,
            action=AuditAction.UPDATE,
            changes={
                "status": {"old": current.status.value, "new": updated.status.value},
                "sent_at": {
                    "old": current.sent_at.isoformat() if current.sent_at else None,
                    "new": now.isoformat(),
                },
            }
        )

        resend = current.status == InvoiceStatus.SENT
        logger.info(f"Invoice {invoice_id} {'re-sent' if resend else 'sent'}")
        self.event_bus.publish(InvoiceSent.create(invoice=updated, resend=resend))

        return updated

    # -------------------------------------------------------------------------
    # Edit
    # -------------------------------------------------------------------------

    def update_line_items(self, invoice_id: UUID, data: InvoiceLineItemsUpdate) -> Invoice:
        """
        Replace the line items, discount and deposit of an invoice.

        Items carrying an id are updated in place, items without one are
        inserted, stored items missing from the request are deleted. Totals
        and the remaining balance are recomputed from scratch, which is only
        sound while no money has been received.

        Raises:
            ValueError: Invoice not found, or an item id is not on this invoice
            LineItemsLockedError: Invoice is paid or a payment has posted
            InvoiceValidationError: A composition rule failed
        """
        current = self._require(invoice_id)
        if current.status == InvoiceStatus.PAID or self.payments.has_succeeded_payment(invoice_id):
            raise LineItemsLockedError(invoice_id)

        validation.validate_composition(
            current.recipient_type, current.recipient_id, data.line_items,
            self.config.max_booking_items,
        )
        lookup = self.catalog.build_lookup(data.line_items)
        validation.validate_references(
            current.recipient_type, current.recipient_id, data.line_items, lookup
        )
        items = validation.resolve_line_items(data.line_items, lookup)

        totals = compute_totals(items, data.discount, data.deposit_percentage)
        discount_amount, discount_percentage = discount_to_columns(data.discount)
        now = now_utc()

        with self.postgres.transaction() as tx:
            existing = {
                UUID(str(r["id"])) for r in tx.execute(
                    "SELECT id FROM invoice_line_items WHERE invoice_id = %s",
                    (invoice_id,)
                )
            }

            kept = [item for item in items if item.id is not None]
            for item in kept:
                if item.id not in existing:
                    raise ValueError(f"Line item {item.id} not found on invoice {invoice_id}")

            removed = existing - {item.id for item in kept}
            if removed:
                tx.execute(
                    "DELETE FROM invoice_line_items WHERE invoice_id = %s AND id = ANY(%s::uuid[])",
                    (invoice_id, list(removed))
                )

            for item in kept:
                self._update_line_item(tx, item)

            new_items = [item for item in items if item.id is None]
            tx.insert_many(
                _INSERT_LINE_ITEMS,
                [_line_item_row(invoice_id, item, now) for item in new_items],
            )

            row = tx.execute_returning(
                """
                UPDATE invoices
                SET total_amount = %s, remaining_balance = %s,
                    discount_amount = %s, discount_percentage = %s,
                    deposit_percentage = %s, deposit_amount = %s,
                    updated_at = %s
                WHERE id = %s
                RETURNING *
                """,
                (
                    totals.total, totals.remaining,
                    discount_amount, discount_percentage,
                    data.deposit_percentage, totals.deposit,
                    now, invoice_id,
                )
            )[0]

        updated = Invoice.model_validate(row)

        changes = compute_changes(current.model_dump(mode="json"), updated.model_dump(mode="json"))
        changes["line_items"] = {
            "kept": len(kept),
            "removed": len(removed),
            "added": len(new_items),
        }
        self.audit.log_change(
            entity_type=AuditEntity.INVOICE,
            entity_id=invoice_id,
            action=AuditAction.UPDATE,
            changes=changes
        )

        return updated

    def _update_line_item(self, tx: Transaction, item: LineItemDraft) -> None:
        tx.execute(
            """
            UPDATE invoice_line_items
            SET type = %s, service_package_id = %s, store_product_id = %s, booking_id = %s,
                custom_description = %s, custom_price = %s, quantity = %s,
                vendor_id = %s, stripe_account_id = %s
            WHERE id = %s
            """,
            (
                item.type.value, item.service_package_id, item.store_product_id, item.booking_id,
                item.custom_description or None, item.custom_price, item.quantity,
                item.vendor_id, item.stripe_account_id,
                item.id,
            )
        )

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    def _apply_payment(
        self, tx: Transaction, invoice: Invoice, payment: PaymentCreate
    ) -> tuple[Invoice, Payment]:
        """
        Insert a payment and move the invoice balance in the same transaction.

        A succeeded payment lowers the remaining balance (never below zero);
        a sent invoice whose balance reaches zero becomes paid.
        """
        recorded = insert_payment(tx, payment)
        if payment.status != PaymentStatus.SUCCEEDED:
            return invoice, recorded

        remaining = max(invoice.remaining_balance - payment.amount, 0)
        status = invoice.status
        paid_at = invoice.paid_at
        if remaining == 0 and invoice.status == InvoiceStatus.SENT:
            status = InvoiceStatus.PAID
            paid_at = now_utc()

        row = tx.execute_returning(
            """
            UPDATE invoices
            SET remaining_balance = %s, status = %s, paid_at = %s, updated_at = %s
            WHERE id = %s
            RETURNING *
            """,
            (remaining, status.value, paid_at, now_utc(), invoice.id)
        )[0]
        return Invoice.model_validate(row), recorded

    def _lock(self, tx: Transaction, invoice_id: UUID) -> Invoice:
        rows = tx.execute("SELECT * FROM invoices WHERE id = %s FOR UPDATE", (invoice_id,))
        if not rows:
            raise ValueError(f"Invoice {invoice_id} not found")
        return Invoice.model_validate(rows[0])

    def _after_payment(self, before: Invoice, after: Invoice, payment: Payment) -> None:
        self.audit.log_change(
            entity_type=AuditEntity.INVOICE,
            entity_id=after.id,
            action=AuditAction.UPDATE,
            changes={
                "remaining_balance": {"old": before.remaining_balance, "new": after.remaining_balance},
                "status": {"old": before.status.value, "new": after.status.value},
                "payment_recorded": {
                    "id": str(payment.id),
                    "amount": payment.amount,
                    "payment_type": payment.payment_type.value,
                    "status": payment.status.value,
                },
            }
        )

        if after.status == InvoiceStatus.PAID and before.status != InvoiceStatus.PAID:
            logger.info(f"Invoice {after.id} paid")
            self.event_bus.publish(
                InvoicePaid.create(invoice=after, line_items=self.get_line_items(after.id))
            )

    def record_payment(
        self,
        invoice_id: UUID,
        amount: int,
        payment_type: PaymentType = PaymentType.OTHER,
        status: PaymentStatus = PaymentStatus.SUCCEEDED,
    ) -> Invoice:
        """
        Record a payment an operator received outside the processor.

        Raises:
            ValueError: Invoice not found or amount not positive
            InvalidStatusTransitionError: Invoice already paid
        """
        payment = PaymentCreate(
            invoice_id=invoice_id,
            amount=amount,
            status=status,
            payment_type=payment_type,
            to_platform=True,
        )

        with self.postgres.transaction() as tx:
            current = self._lock(tx, invoice_id)
            if current.status == InvoiceStatus.PAID:
                raise InvalidStatusTransitionError(invoice_id, current.status.value, "record a payment")
            updated, recorded = self._apply_payment(tx, current, payment)

        logger.info(f"Payment of {amount} recorded on invoice {invoice_id}")
        self._after_payment(current, updated, recorded)
        return updated

    def mark_paid(self, invoice_id: UUID, stripe_payment_intent_id: str, amount: int) -> Invoice:
        """
        Apply a processor-confirmed payment of the remaining balance.

        Safe to call repeatedly for the same intent: an already paid invoice,
        or an intent that was already recorded, is returned unchanged.
        """
        with self.postgres.transaction() as tx:
            current = self._lock(tx, invoice_id)
            if current.status == InvoiceStatus.PAID:
                logger.info(f"Invoice {invoice_id} already paid; ignoring {stripe_payment_intent_id}")
                return current

            seen = tx.execute(
                "SELECT id FROM payments WHERE invoice_id = %s AND stripe_payment_id = %s",
                (invoice_id, stripe_payment_intent_id)
            )
            if seen:
                logger.info(f"Intent {stripe_payment_intent_id} already recorded on {invoice_id}")
                return current

            if current.status == InvoiceStatus.DRAFT:
                logger.warning(f"Processor payment on draft invoice {invoice_id}; status kept")

            updated, recorded = self._apply_payment(tx, current, PaymentCreate(
                invoice_id=invoice_id,
                amount=amount,
                status=PaymentStatus.SUCCEEDED,
                payment_type=PaymentType.BALANCE,
                stripe_payment_id=stripe_payment_intent_id,
                to_platform=True,
            ))

        self._after_payment(current, updated, recorded)
        return updated

    def attach_payment_intent(self, invoice_id: UUID, stripe_payment_intent_id: str) -> None:
        """Remember the latest processor intent created for an invoice."""
        self.postgres.execute(
            "UPDATE invoices SET stripe_payment_intent_id = %s, updated_at = %s WHERE id = %s",
            (stripe_payment_intent_id, now_utc(), invoice_id)
        )

