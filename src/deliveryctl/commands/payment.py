"""Command group: payments."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from deliveryctl.commands._base import DlvGroup
from deliveryctl.domain.lifecycle import PaymentMode, PaymentStatus

if TYPE_CHECKING:
    from deliveryctl.commands._context import AppContext


@click.group(
    cls=DlvGroup,
    examples='  deliveryctl payment add 4 --order 1006 --amount 250 --mode upi --status completed',
)
def payment() -> None:
    """Record payments against orders."""


@payment.command(
    examples="""\
  deliveryctl payment add 4 --order 1006 --amount 250 --mode upi
  deliveryctl payment add 5 --order 1007 --amount 300 --mode cash --status completed"""
)
@click.argument("payment_id", type=int)
@click.option("--order", "order_id", type=int, required=True, help="Order ID.")
@click.option("--amount", type=click.FloatRange(min=0), required=True, help="Amount paid.")
@click.option(
    "--mode",
    required=True,
    help=f"Payment mode (e.g. {', '.join(m.value for m in PaymentMode)}).",
)
@click.option("--status", default=PaymentStatus.PENDING.value, help="Payment status.")
@click.pass_obj
def add(
    app: AppContext,
    payment_id: int,
    order_id: int,
    amount: float,
    mode: str,
    status: str,
) -> None:
    """Add the payment for an order (one payment per order)."""
    from deliveryctl.services.orders import OrderService

    app.emit(
        OrderService(app.store).add_payment(
            payment_id=payment_id,
            order_id=order_id,
            amount=amount,
            mode=mode,
            status=status,
        )
    )
