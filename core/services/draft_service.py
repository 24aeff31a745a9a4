"""
Invoice drafts: the composer kept server-side between requests.

Each draft is the composer's JSON state under `invoice_draft:<id>` in Valkey,
refreshed on every change and dropped after `draft_ttl_hours` of inactivity.
Catalog rows are fetched per operation for exactly the references involved.
Submitting creates the invoice with the draft id as submission key, so a
double-submitted draft produces one invoice.
"""

import logging
from typing import Any, Callable
from uuid import UUID, uuid4

from clients.valkey_client import ValkeyClient
from core.composer import InvoiceComposer
from core.config import BillingConfig
from core.models import Invoice, RecipientType
from core.services.catalog_service import CatalogService
from core.services.invoice_service import InvoiceService

logger = logging.getLogger(__name__)

_REFERENCE_FIELDS = {
    "service_package_id": "package_ids",
    "store_product_id": "product_ids",
    "booking_id": "booking_ids",
}


def _reference(value: Any) -> list[UUID]:
    try:
        return [UUID(str(value))] if value else []
    except ValueError:
        # malformed ids are rejected by the composer
        return []


class DraftService:
    """Valkey-backed invoice composition sessions."""

    KEY_PREFIX = "invoice_draft:"

    def __init__(
        self,
        valkey: ValkeyClient,
        catalog: CatalogService,
        invoices: InvoiceService,
        config: BillingConfig | None = None,
    ):
        self._valkey = valkey
        self.catalog = catalog
        self.invoices = invoices
        self.config = config or BillingConfig()

    def _key(self, draft_id: UUID) -> str:
        return f"{self.KEY_PREFIX}{draft_id}"

    def _ttl_seconds(self) -> int:
        return self.config.draft_ttl_hours * 3600

    def _load(self, draft_id: UUID, **extra_ids) -> InvoiceComposer:
        state = self._valkey.get_json(self._key(draft_id))
        if state is None:
            raise ValueError(f"Draft {draft_id} not found")

        composer = InvoiceComposer.from_state(
            state, max_booking_items=self.config.max_booking_items
        )
        composer.lookup = self.catalog.build_lookup(composer.items, **extra_ids)
        return composer

    def _save(self, draft_id: UUID, composer: InvoiceComposer) -> None:
        self._valkey.set_json(
            self._key(draft_id), composer.to_state(), expire_seconds=self._ttl_seconds()
        )

    def _view(self, draft_id: UUID, composer: InvoiceComposer) -> dict:
        return {
            "id": str(draft_id),
            **composer.to_state(),
            "totals": composer.totals().model_dump(),
        }

    def _mutate(
        self, draft_id: UUID, change: Callable[[InvoiceComposer], Any], **extra_ids
    ) -> dict:
        composer = self._load(draft_id, **extra_ids)
        change(composer)
        self._save(draft_id, composer)
        return self._view(draft_id, composer)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(
        self,
        recipient_type: RecipientType = RecipientType.COUPLE,
        recipient_id: UUID | None = None,
    ) -> dict:
        draft_id = uuid4()
        composer = InvoiceComposer(max_booking_items=self.config.max_booking_items)
        composer.set_recipient(recipient_type, recipient_id)
        self._save(draft_id, composer)
        logger.info(f"Invoice draft {draft_id} started")
        return self._view(draft_id, composer)

    def get(self, draft_id: UUID) -> dict:
        return self._view(draft_id, self._load(draft_id))

    def discard(self, draft_id: UUID) -> bool:
        return self._valkey.delete(self._key(draft_id))

    def submit(self, draft_id: UUID) -> Invoice:
        """
        Create the invoice and drop the draft.

        The draft survives a failed create so the operator can fix it.
        """
        composer = self._load(draft_id)
        invoice = self.invoices.create(composer.build_request(), submission_key=f"draft:{draft_id}")
        self._valkey.delete(self._key(draft_id))
        logger.info(f"Invoice draft {draft_id} submitted as invoice {invoice.id}")
        return invoice

    # -------------------------------------------------------------------------
    # Builder operations
    # -------------------------------------------------------------------------

    def set_recipient(self, draft_id: UUID, recipient_type: RecipientType, recipient_id: UUID | None) -> dict:
        return self._mutate(draft_id, lambda c: c.set_recipient(recipient_type, recipient_id))

    def add_line_item(self, draft_id: UUID, item_type: str, from_booking: bool = False) -> dict:
        return self._mutate(draft_id, lambda c: c.add_line_item(item_type, from_booking))

    def update_line_item(self, draft_id: UUID, index: int, field: str, value: Any) -> dict:
        extra = {}
        if field in _REFERENCE_FIELDS:
            extra[_REFERENCE_FIELDS[field]] = _reference(value)
        return self._mutate(draft_id, lambda c: c.update_line_item(index, field, value), **extra)

    def remove_line_item(self, draft_id: UUID, index: int) -> dict:
        return self._mutate(draft_id, lambda c: c.remove_line_item(index))

    def set_discount_mode(self, draft_id: UUID, mode: str) -> dict:
        return self._mutate(draft_id, lambda c: c.set_discount_mode(mode))

    def set_discount_value(self, draft_id: UUID, value: int) -> dict:
        return self._mutate(draft_id, lambda c: c.set_discount_value(value))

    def set_deposit(self, draft_id: UUID, percentage: int) -> dict:
        return self._mutate(draft_id, lambda c: c.set_deposit_percentage(percentage))
