"""Catalog models.

All prices are stored in cents (integer) to avoid floating point issues.
"""

from dataclasses import dataclass, field
from uuid import UUID

from pydantic import BaseModel

from core.models.booking import Booking
from core.models.recipient import Vendor


class ServicePackage(BaseModel):
    """A package sold through the marketplace."""

    id: UUID
    name: str
    price: int
    description: str | None = None
    service_type: str | None = None

    model_config = {"from_attributes": True}


class StoreProduct(BaseModel):
    """A physical product from the platform store."""

    id: UUID
    name: str
    price: int
    description: str | None = None

    model_config = {"from_attributes": True}


@dataclass
class CatalogLookup:
    """
    Referenced catalog rows keyed by id.

    The composer and the invoice rules resolve line item references here
    instead of querying, so the same rules run in memory and at save time.
    """

    packages: dict[UUID, ServicePackage] = field(default_factory=dict)
    products: dict[UUID, StoreProduct] = field(default_factory=dict)
    bookings: dict[UUID, Booking] = field(default_factory=dict)
    vendors: dict[UUID, Vendor] = field(default_factory=dict)

    @classmethod
    def from_rows(
        cls,
        packages: list[ServicePackage] = (),
        products: list[StoreProduct] = (),
        bookings: list[Booking] = (),
        vendors: list[Vendor] = (),
    ) -> "CatalogLookup":
        return cls(
            packages={p.id: p for p in packages},
            products={p.id: p for p in products},
            bookings={b.id: b for b in bookings},
            vendors={v.id: v for v in vendors},
        )

    def package(self, package_id: UUID) -> ServicePackage | None:
        return self.packages.get(package_id)

    def product(self, product_id: UUID) -> StoreProduct | None:
        return self.products.get(product_id)

    def booking(self, booking_id: UUID) -> Booking | None:
        return self.bookings.get(booking_id)

    def vendor(self, vendor_id: UUID) -> Vendor | None:
        return self.vendors.get(vendor_id)
