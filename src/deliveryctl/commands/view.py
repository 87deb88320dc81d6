"""Command group: read-only reporting views."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from deliveryctl.commands._base import DlvGroup

if TYPE_CHECKING:
    from deliveryctl.commands._context import AppContext


@click.group(
    cls=DlvGroup,
    examples="""\
  deliveryctl view customer-orders
  deliveryctl view customer-orders --customer 106
  deliveryctl --json view payments --order 1006
  deliveryctl view rebuild""",
)
def view() -> None:
    """Query the customer_orders and payment_details views."""


@view.command(
    "customer-orders",
    examples="""\
  deliveryctl view customer-orders
  deliveryctl view customer-orders --customer 106""",
)
@click.option("--customer", "customer_id", type=int, default=None, help="Filter by customer.")
@click.pass_obj
def customer_orders(app: AppContext, customer_id: int | None) -> None:
    """Customers joined with their orders."""
    from deliveryctl.services.views import ViewService

    app.emit(ViewService(app.store).customer_orders(customer_id=customer_id))


@view.command(
    "payments",
    examples="""\
  deliveryctl view payments
  deliveryctl view payments --order 1006""",
)
@click.option("--order", "order_id", type=int, default=None, help="Filter by order.")
@click.pass_obj
def payments(app: AppContext, order_id: int | None) -> None:
    """Payments joined with their orders."""
    from deliveryctl.services.views import ViewService

    app.emit(ViewService(app.store).payment_details(order_id=order_id))


@view.command(examples="  deliveryctl view rebuild")
@click.pass_obj
def rebuild(app: AppContext) -> None:
    """Drop and recreate both views."""
    from deliveryctl.services.views import ViewService

    app.emit(ViewService(app.store).rebuild())
