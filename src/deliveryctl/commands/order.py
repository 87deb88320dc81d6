"""Command group: order placement, status changes, and lookup."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from deliveryctl.commands._base import DlvGroup
from deliveryctl.domain.lifecycle import OrderStatus

if TYPE_CHECKING:
    from deliveryctl.commands._context import AppContext

_KNOWN_STATUSES = ", ".join(s.value for s in OrderStatus)


@click.group(
    cls=DlvGroup,
    examples="""\
  deliveryctl order place 1006 --customer 106 --agent 1 --total 250
  deliveryctl order status 1006 completed
  deliveryctl order show 1006""",
)
def order() -> None:
    """Place orders and move them through fulfilment."""


@order.command(
    examples="""\
  deliveryctl order place 1006 --customer 106 --agent 1 --total 250
  deliveryctl order place 1007 --customer 107 --agent 2 --total 300 --address "4 Park Street\""""
)
@click.argument("order_id", type=int)
@click.option("--customer", "customer_id", type=int, required=True, help="Customer ID.")
@click.option("--agent", "agent_id", type=int, required=True, help="Delivery agent ID.")
@click.option(
    "--total", "total_amount", type=click.FloatRange(min=0), required=True, help="Order total."
)
@click.option(
    "--address",
    default=None,
    help="Delivery address (defaults to the customer's address on file).",
)
@click.option("--status", default=OrderStatus.PLACED.value, help="Initial status.")
@click.pass_obj
def place(
    app: AppContext,
    order_id: int,
    customer_id: int,
    agent_id: int,
    total_amount: float,
    address: str | None,
    status: str,
) -> None:
    """Place an order (fails if the delivery agent is unavailable)."""
    from deliveryctl.services.orders import OrderService

    app.emit(
        OrderService(app.store).place_order(
            order_id=order_id,
            customer_id=customer_id,
            delivery_agent_id=agent_id,
            total_amount=total_amount,
            address=address,
            status=status,
        )
    )


@order.command(
    help=(
        "Set an order's STATUS (completing an order completes its payment).\n\n"
        f"Known statuses: {_KNOWN_STATUSES}."
    ),
    examples="""\
  deliveryctl order status 1006 out_for_delivery
  deliveryctl order status 1006 completed""",
)
@click.argument("order_id", type=int)
@click.argument("status")
@click.pass_obj
def status(app: AppContext, order_id: int, status: str) -> None:
    from deliveryctl.services.orders import OrderService

    app.emit(OrderService(app.store).update_status(order_id, status))


@order.command(examples="  deliveryctl order show 1006")
@click.argument("order_id", type=int)
@click.pass_obj
def show(app: AppContext, order_id: int) -> None:
    """Show an order and its payment."""
    from deliveryctl.services.orders import OrderService

    app.emit(OrderService(app.store).get_order(order_id))
