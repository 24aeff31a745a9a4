"""Booking model (read-only; bookings are managed elsewhere in the dashboard)."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class Booking(BaseModel):
    """A couple's booking of a vendor's package. Amounts in cents."""

    id: UUID
    couple_id: UUID
    vendor_id: UUID | None = None
    package_id: UUID | None = None
    amount: int | None = None
    initial_payment: int | None = None
    service_type: str | None = None
    event_id: UUID | None = None
    status: str | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}
