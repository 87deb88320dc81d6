"""Command group: delivery agents."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from deliveryctl.commands._base import DlvGroup

if TYPE_CHECKING:
    from deliveryctl.commands._context import AppContext


@click.group(
    cls=DlvGroup,
    examples="""\
  deliveryctl agent add 1 "Ravi" --phone 9800000001
  deliveryctl agent list""",
)
def agent() -> None:
    """Add and list delivery agents."""


@agent.command(examples='  deliveryctl agent add 1 "Ravi" --phone 9800000001')
@click.argument("agent_id", type=int)
@click.argument("name")
@click.option("--phone", default=None, help="Contact number.")
@click.pass_obj
def add(app: AppContext, agent_id: int, name: str, phone: str | None) -> None:
    """Add a delivery agent."""
    from deliveryctl.services.orders import OrderService

    app.emit(OrderService(app.store).add_agent(name, agent_id=agent_id, phone=phone))


@agent.command(
    "list",
    examples="""\
  deliveryctl agent list
  deliveryctl --json agent list""",
)
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """List delivery agents and whether each is available."""
    from deliveryctl.services.orders import OrderService

    app.emit(OrderService(app.store).list_agents())
