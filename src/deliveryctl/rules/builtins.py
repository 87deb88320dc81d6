"""Built-in order rules.

- :class:`PaymentStatusPropagation` — completing an order completes its payment.
- :class:`AgentAvailabilityGuard` — a delivery agent takes one order at a time.
- :class:`AddressSync` — placing an order updates the customer's address.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import func, select, update

from deliveryctl.domain.changes import Change
from deliveryctl.domain.errors import ConstraintViolation
from deliveryctl.domain.lifecycle import OrderStatus, PaymentStatus, is_completion
from deliveryctl.infrastructure.database.schema import customers, orders, payments
from deliveryctl.rules.hookspecs import hookimpl

if TYPE_CHECKING:
    from sqlalchemy import Connection

    from deliveryctl.domain.models import Order

logger = logging.getLogger(__name__)

AGENT_UNAVAILABLE_MESSAGE = "Delivery agent is currently unavailable"


class PaymentStatusPropagation:
    """After an order update to the completion label, mark its payment completed.

    A missing payment is not an error: zero rows are affected.
    """

    name = "payment_status_propagation"

    def __init__(self, completed_status: str = OrderStatus.COMPLETED) -> None:
        self.completed_status = completed_status

    @hookimpl
    def after_order_update(self, conn: Connection, before: Order, after: Order) -> Change | None:
        if not is_completion(after.status, self.completed_status):
            return None
        result = conn.execute(
            update(payments)
            .where(payments.c.order_id == after.id)
            .values(status=PaymentStatus.COMPLETED.value)
        )
        logger.debug(
            "Rule %s: order %s completed, %d payment(s) updated",
            self.name,
            after.id,
            result.rowcount,
        )
        return Change("update", "payments", after.id, rows=result.rowcount, rule=self.name)


class AgentAvailabilityGuard:
    """Reject an order whose delivery agent already has an order.

    The count and the insert share one write transaction opened with
    ``BEGIN IMMEDIATE``, so no other writer can slip an order in between.
    """

    name = "agent_availability_guard"

    @hookimpl
    def validate_order_insert(self, conn: Connection, order: Order) -> None:
        count = conn.execute(
            select(func.count())
            .select_from(orders)
            .where(orders.c.delivery_agent_id == order.delivery_agent_id)
        ).scalar_one()
        if count >= 1:
            logger.debug(
                "Rule %s: agent %s has %d order(s), rejecting",
                self.name,
                order.delivery_agent_id,
                count,
            )
            raise ConstraintViolation(
                AGENT_UNAVAILABLE_MESSAGE,
                delivery_agent_id=order.delivery_agent_id,
                existing_orders=count,
            )


class AddressSync:
    """After an order insert, copy the order's address onto its customer."""

    name = "address_sync"

    @hookimpl
    def after_order_insert(self, conn: Connection, order: Order) -> Change | None:
        result = conn.execute(
            update(customers)
            .where(customers.c.id == order.customer_id)
            .values(address=order.address)
        )
        logger.debug("Rule %s: customer %s address synced", self.name, order.customer_id)
        return Change(
            "update", "customers", order.customer_id, rows=result.rowcount, rule=self.name
        )


def builtin_rules(*, completed_status: str = OrderStatus.COMPLETED) -> list[object]:
    """Instantiate the three built-in rules."""
    return [
        AgentAvailabilityGuard(),
        AddressSync(),
        PaymentStatusPropagation(completed_status=completed_status),
    ]
