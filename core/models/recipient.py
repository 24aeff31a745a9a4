"""Invoice recipients: couples and vendors."""

from uuid import UUID

from pydantic import BaseModel


class Couple(BaseModel):
    id: UUID
    partner1_name: str
    partner2_name: str | None = None
    email: str | None = None
    phone: str | None = None

    model_config = {"from_attributes": True}

    @property
    def display_name(self) -> str:
        if self.partner2_name:
            return f"{self.partner1_name} & {self.partner2_name}"
        return self.partner1_name


class Vendor(BaseModel):
    """A marketplace vendor. `stripe_account_id` is the connected account for payouts."""

    id: UUID
    name: str
    phone: str | None = None
    stripe_account_id: str | None = None

    model_config = {"from_attributes": True}
