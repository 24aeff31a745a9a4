"""
Catalog service: read-only access to what invoices can reference.

Service packages, store products, vendors, couples and bookings are managed
by other parts of the dashboard. Billing only reads them, either for pickers
or to resolve the exact rows an invoice references.
"""

import logging
from typing import Iterable
from uuid import UUID

from clients.postgres_client import PostgresClient
from core.models import (
    Booking,
    CatalogLookup,
    Couple,
    LineItemDraft,
    ServicePackage,
    StoreProduct,
    Vendor,
)

logger = logging.getLogger(__name__)


def _unique(ids: Iterable[UUID | None]) -> list[UUID]:
    return list(dict.fromkeys(i for i in ids if i is not None))


class CatalogService:
    """Read queries over the marketplace catalog and parties."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    # -------------------------------------------------------------------------
    # Pickers
    # -------------------------------------------------------------------------

    def list_service_packages(self) -> list[ServicePackage]:
        rows = self.postgres.execute("SELECT * FROM service_packages ORDER BY name ASC")
        return [ServicePackage.model_validate(row) for row in rows]

    def list_store_products(self) -> list[StoreProduct]:
        rows = self.postgres.execute("SELECT * FROM store_products ORDER BY name ASC")
        return [StoreProduct.model_validate(row) for row in rows]

    def list_vendors(self) -> list[Vendor]:
        rows = self.postgres.execute(
            "SELECT id, name, phone, stripe_account_id FROM vendors ORDER BY name ASC"
        )
        return [Vendor.model_validate(row) for row in rows]

    def list_couples(self) -> list[Couple]:
        rows = self.postgres.execute(
            """
            SELECT id, partner1_name, partner2_name, email, phone
            FROM couples
            ORDER BY partner1_name ASC
            """
        )
        return [Couple.model_validate(row) for row in rows]

    def list_bookings_for_couple(self, couple_id: UUID) -> list[Booking]:
        """A couple's bookings, newest first."""
        rows = self.postgres.execute(
            """
            SELECT * FROM bookings
            WHERE couple_id = %s
            ORDER BY created_at DESC
            """,
            (couple_id,)
        )
        return [Booking.model_validate(row) for row in rows]

    def get_couple(self, couple_id: UUID) -> Couple | None:
        row = self.postgres.execute_single(
            "SELECT id, partner1_name, partner2_name, email, phone FROM couples WHERE id = %s",
            (couple_id,)
        )
        return Couple.model_validate(row) if row else None

    def get_vendor(self, vendor_id: UUID) -> Vendor | None:
        row = self.postgres.execute_single(
            "SELECT id, name, phone, stripe_account_id FROM vendors WHERE id = %s",
            (vendor_id,)
        )
        return Vendor.model_validate(row) if row else None

    # -------------------------------------------------------------------------
    # Reference resolution
    # -------------------------------------------------------------------------

    def _fetch_by_ids(self, table: str, ids: list[UUID]) -> list[dict]:
        if not ids:
            return []
        return self.postgres.execute(
            f"SELECT * FROM {table} WHERE id = ANY(%s::uuid[])",
            (ids,)
        )

    def build_lookup(
        self,
        items: Iterable[LineItemDraft],
        package_ids: Iterable[UUID] = (),
        product_ids: Iterable[UUID] = (),
        booking_ids: Iterable[UUID] = (),
    ) -> CatalogLookup:
        """
        Fetch exactly the rows referenced by a set of line items.

        Extra ids can be passed for a selection that is about to be applied.
        Vendors are fetched for every booking found, so payout routing can be
        copied onto booking-linked items.
        """
        items = list(items)

        booking_rows = self._fetch_by_ids(
            "bookings", _unique([i.booking_id for i in items] + list(booking_ids))
        )
        bookings = [Booking.model_validate(row) for row in booking_rows]

        package_rows = self._fetch_by_ids(
            "service_packages",
            _unique(
                [i.service_package_id for i in items]
                + [b.package_id for b in bookings]
                + list(package_ids)
            ),
        )
        product_rows = self._fetch_by_ids(
            "store_products", _unique([i.store_product_id for i in items] + list(product_ids))
        )
        vendor_rows = self._fetch_by_ids(
            "vendors", _unique([b.vendor_id for b in bookings] + [i.vendor_id for i in items])
        )

        return CatalogLookup.from_rows(
            packages=[ServicePackage.model_validate(row) for row in package_rows],
            products=[StoreProduct.model_validate(row) for row in product_rows],
            bookings=bookings,
            vendors=[Vendor.model_validate(row) for row in vendor_rows],
        )
