"""Payment ledger models. Amounts in cents."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class PaymentType(str, Enum):
    DEPOSIT = "deposit"
    BALANCE = "balance"
    OTHER = "other"


class PaymentStatus(str, Enum):
    SUCCEEDED = "succeeded"
    PENDING = "pending"
    FAILED = "failed"


class PaymentCreate(BaseModel):
    """
    A payment to record.

    `to_platform` is False for amounts routed to a vendor's connected
    account rather than kept by the platform.
    """

    invoice_id: UUID | None = None
    booking_id: UUID | None = None
    amount: int = Field(..., gt=0)
    status: PaymentStatus = PaymentStatus.SUCCEEDED
    payment_type: PaymentType = PaymentType.OTHER
    stripe_payment_id: str | None = Field(None, max_length=255)
    to_platform: bool = True

    @model_validator(mode="after")
    def require_target(self) -> "PaymentCreate":
        if self.invoice_id is None and self.booking_id is None:
            raise ValueError("A payment needs an invoice_id or a booking_id")
        return self


class Payment(BaseModel):
    """Full payment entity as stored."""

    id: UUID
    invoice_id: UUID | None = None
    booking_id: UUID | None = None
    amount: int
    status: PaymentStatus
    payment_type: PaymentType
    stripe_payment_id: str | None = None
    to_platform: bool
    created_at: datetime

    model_config = {"from_attributes": True}

    @property
    def succeeded(self) -> bool:
        return self.status == PaymentStatus.SUCCEEDED
