"""OrderService — customers, delivery agents, orders, and payments.

Each public method is one unit of work. Order writes go through the
unit of work so the order rules fire; any failure aborts the whole
unit of work and comes back as a failed result.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from deliveryctl.domain.lifecycle import OrderStatus, PaymentStatus
from deliveryctl.domain.models import Customer, DeliveryAgent, Order, Payment
from deliveryctl.infrastructure.database.schema import (
    customers,
    delivery_agents,
    orders,
    payments,
)
from deliveryctl.services.base import EXPECTED_ERRORS, BaseService
from deliveryctl.services.result import ServiceResult

if TYPE_CHECKING:
    from deliveryctl.infrastructure.store import UnitOfWork


def with_customer_address(uow: UnitOfWork, order: Order) -> Order:
    """Fill an order's address from its customer when none was given.

    An order carries its own copy of the delivery address; omitting it
    means "deliver to the address on file". Unknown customers are left
    for :meth:`UnitOfWork.place_order` to reject.
    """
    if order.address is not None:
        return order
    customer = uow.get_customer(order.customer_id)
    if customer is None:
        return order
    return order.model_copy(update={"address": customer.address})


class OrderService(BaseService):
    """Handles record creation, order placement, and status changes."""

    # ------------------------------------------------------------------
    # Customers and agents
    # ------------------------------------------------------------------

    def add_customer(
        self,
        name: str,
        *,
        customer_id: int | None = None,
        age: int | None = None,
        address: str | None = None,
    ) -> ServiceResult:
        op = "add_customer"
        try:
            customer = Customer(id=customer_id, name=name, age=age, address=address)
            with self._store.transaction() as uow:
                created = uow.add_customer(customer)
        except EXPECTED_ERRORS as exc:
            return self._failure(op, exc)
        return ServiceResult(ok=True, op=op, data=created.model_dump())

    def add_agent(
        self,
        name: str,
        *,
        agent_id: int | None = None,
        phone: str | None = None,
    ) -> ServiceResult:
        op = "add_agent"
        try:
            agent = DeliveryAgent(id=agent_id, name=name, phone=phone)
            with self._store.transaction() as uow:
                created = uow.add_agent(agent)
        except EXPECTED_ERRORS as exc:
            return self._failure(op, exc)
        return ServiceResult(ok=True, op=op, data=created.model_dump())

    def get_customer(self, customer_id: int) -> ServiceResult:
        """Customer record plus the IDs of their orders."""
        op = "get_customer"
        with self._store.read() as conn:
            row = conn.execute(select(customers).where(customers.c.id == customer_id)).first()
            if row is None:
                return _not_found(op, "customer", customer_id)
            order_ids = list(
                conn.execute(
                    select(orders.c.id)
                    .where(orders.c.customer_id == customer_id)
                    .order_by(orders.c.id)
                ).scalars()
            )
        data = Customer.from_row(row).model_dump()
        data["orders"] = order_ids
        return ServiceResult(ok=True, op=op, data=data)

    def list_agents(self) -> ServiceResult:
        """All delivery agents with the order each is assigned to, if any."""
        op = "list_agents"
        with self._store.read() as conn:
            agent_rows = conn.execute(select(delivery_agents).order_by(delivery_agents.c.id)).all()
            busy = {
                r.delivery_agent_id: r.order_id
                for r in conn.execute(
                    select(orders.c.delivery_agent_id, orders.c.id.label("order_id"))
                ).all()
            }
        rows: list[dict[str, Any]] = []
        for row in agent_rows:
            agent = DeliveryAgent.from_row(row).model_dump()
            agent["order_id"] = busy.get(agent["id"])
            agent["available"] = agent["order_id"] is None
            rows.append(agent)
        return ServiceResult(ok=True, op=op, data={"count": len(rows), "rows": rows})

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def place_order(
        self,
        *,
        customer_id: int,
        delivery_agent_id: int,
        total_amount: float,
        order_id: int | None = None,
        address: str | None = None,
        status: str = OrderStatus.PLACED.value,
    ) -> ServiceResult:
        """Insert an order.

        The agent availability guard runs first; on success the
        customer's address is synced to the order's address.
        """
        op = "place_order"
        try:
            order = Order(
                id=order_id,
                customer_id=customer_id,
                delivery_agent_id=delivery_agent_id,
                status=status,
                address=address,
                total_amount=total_amount,
            )
            with self._store.transaction() as uow:
                placed = uow.place_order(with_customer_address(uow, order))
                changes = uow.changes
        except EXPECTED_ERRORS as exc:
            return self._failure(op, exc)
        data = placed.model_dump()
        data["changes"] = [c.to_dict() for c in changes]
        return ServiceResult(ok=True, op=op, data=data)

    def update_status(self, order_id: int, status: str) -> ServiceResult:
        """Change an order's status; completing it completes its payment."""
        op = "update_status"
        warnings: list[str] = []
        try:
            with self._store.transaction() as uow:
                before = uow.get_order(order_id)
                updated = uow.update_order_status(order_id, status)
                payment = uow.get_payment_for_order(order_id)
                changes = uow.changes
        except EXPECTED_ERRORS as exc:
            return self._failure(op, exc)

        if before is not None and before.status == status:
            warnings.append(f"Order {order_id} already had status {status!r}")
        if payment is None and status == self._store.settings.rules.completed_status:
            warnings.append(f"Order {order_id} has no payment to complete")

        data = updated.model_dump()
        data["previous_status"] = before.status if before is not None else None
        data["payment_status"] = payment.status if payment is not None else None
        data["changes"] = [c.to_dict() for c in changes]
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)

    def get_order(self, order_id: int) -> ServiceResult:
        """Order record plus its payment (if any)."""
        op = "get_order"
        with self._store.read() as conn:
            row = conn.execute(select(orders).where(orders.c.id == order_id)).first()
            if row is None:
                return _not_found(op, "order", order_id)
            payment_row = conn.execute(
                select(payments).where(payments.c.order_id == order_id)
            ).first()
        data = Order.from_row(row).model_dump()
        data["payment"] = Payment.from_row(payment_row).model_dump() if payment_row else None
        return ServiceResult(ok=True, op=op, data=data)

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def add_payment(
        self,
        *,
        order_id: int,
        amount: float,
        mode: str,
        payment_id: int | None = None,
        status: str = PaymentStatus.PENDING.value,
    ) -> ServiceResult:
        op = "add_payment"
        warnings: list[str] = []
        try:
            payment = Payment(
                id=payment_id,
                order_id=order_id,
                amount=amount,
                mode=mode,
                status=status,
            )
            with self._store.transaction() as uow:
                created = uow.add_payment(payment)
                order = uow.get_order(order_id)
        except EXPECTED_ERRORS as exc:
            return self._failure(op, exc)
        if order is not None and order.total_amount != created.amount:
            warnings.append(
                f"Payment amount {created.amount} differs from order total {order.total_amount}"
            )
        return ServiceResult(ok=True, op=op, data=created.model_dump(), warnings=warnings)


def _not_found(op: str, kind: str, key: int) -> ServiceResult:
    detail = {f"{kind}_id": key}
    return ServiceResult.failure(op, "NOT_FOUND", f"No {kind} found with ID: {key}", **detail)
