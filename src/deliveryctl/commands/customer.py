"""Command group: customer records."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from deliveryctl.commands._base import DlvGroup

if TYPE_CHECKING:
    from deliveryctl.commands._context import AppContext


@click.group(
    cls=DlvGroup,
    examples="""\
  deliveryctl customer add 106 "Asha Rao" --age 29 --address "12 MG Road"
  deliveryctl customer show 106""",
)
def customer() -> None:
    """Add and inspect customers."""


@customer.command(
    examples="""\
  deliveryctl customer add 106 "Asha Rao"
  deliveryctl customer add 107 "Vikram Das" --age 41 --address "4 Park Street\""""
)
@click.argument("customer_id", type=int)
@click.argument("name")
@click.option("--age", type=click.IntRange(min=0), default=None, help="Customer age.")
@click.option("--address", default=None, help="Address on file.")
@click.pass_obj
def add(
    app: AppContext,
    customer_id: int,
    name: str,
    age: int | None,
    address: str | None,
) -> None:
    """Add a customer."""
    from deliveryctl.services.orders import OrderService

    app.emit(
        OrderService(app.store).add_customer(
            name, customer_id=customer_id, age=age, address=address
        )
    )


@customer.command(examples="  deliveryctl customer show 106")
@click.argument("customer_id", type=int)
@click.pass_obj
def show(app: AppContext, customer_id: int) -> None:
    """Show a customer and the IDs of their orders."""
    from deliveryctl.services.orders import OrderService

    app.emit(OrderService(app.store).get_customer(customer_id))
