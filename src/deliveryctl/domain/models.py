"""Record models for customers, delivery agents, orders, and payments.

Models are frozen pydantic objects that map 1:1 to table rows. They
carry validation for field shapes only; cross-row rules (agent
availability, address sync, payment propagation) live in
:mod:`deliveryctl.rules`.
"""

from __future__ import annotations

from typing import Any, Self

from pydantic import BaseModel, Field

from deliveryctl.domain.lifecycle import OrderStatus, PaymentStatus


class _Record(BaseModel):
    """Shared config and row conversion for all records."""

    model_config = {"frozen": True}

    @classmethod
    def from_row(cls, row: Any) -> Self:
        """Build a record from a SQLAlchemy ``Row`` (or any mapping)."""
        mapping = row._mapping if hasattr(row, "_mapping") else row
        return cls.model_validate(dict(mapping))

    def to_values(self) -> dict[str, Any]:
        """Column values for an INSERT, omitting an unset ``id``."""
        values = self.model_dump()
        if values.get("id") is None:
            values.pop("id", None)
        return values


class Customer(_Record):
    id: int | None = None
    name: str = Field(min_length=1)
    age: int | None = Field(default=None, ge=0)
    address: str | None = None


class DeliveryAgent(_Record):
    id: int | None = None
    name: str = Field(min_length=1)
    phone: str | None = None


class Order(_Record):
    """An order as placed by a customer and assigned to a delivery agent.

    ``address`` is a copy of the delivery address taken at placement time.
    """

    id: int | None = None
    customer_id: int
    delivery_agent_id: int
    status: str = OrderStatus.PLACED.value
    address: str | None = None
    total_amount: float = Field(ge=0)


class Payment(_Record):
    """Payment for a single order (one payment per order)."""

    id: int | None = None
    order_id: int
    amount: float = Field(ge=0)
    mode: str = Field(min_length=1)
    status: str = PaymentStatus.PENDING.value
