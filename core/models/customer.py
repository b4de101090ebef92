"""Customer directory records and the snapshot embedded in ledger documents."""

from uuid import UUID

from pydantic import BaseModel, Field


class CustomerSnapshot(BaseModel):
    """
    Customer details copied onto a ledger document when it is created.

    Immutable: a credit note keeps showing the name/email/phone it was
    issued to, even if the directory record changes afterwards.
    """

    name: str = Field(..., min_length=1, max_length=255)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)

    model_config = {"frozen": True}


class Customer(BaseModel):
    """Customer as served by the (read-only) customer directory."""

    id: UUID
    company_id: UUID
    name: str
    email: str | None = None
    phone: str | None = None
    address: str | None = None

    model_config = {"from_attributes": True}

    def snapshot(self) -> CustomerSnapshot:
        return CustomerSnapshot(name=self.name, email=self.email, phone=self.phone)
