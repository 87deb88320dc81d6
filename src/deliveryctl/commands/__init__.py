"""Subcommand modules for deliveryctl.

Provides register_commands() which uses deferred imports to keep
``deliveryctl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all command groups and standalone commands on the root CLI group."""
    # --- Groups ---
    from deliveryctl.commands.agent import agent
    from deliveryctl.commands.customer import customer
    from deliveryctl.commands.order import order
    from deliveryctl.commands.payment import payment
    from deliveryctl.commands.view import view

    cli.add_command(customer)
    cli.add_command(agent)
    cli.add_command(order)
    cli.add_command(payment)
    cli.add_command(view)

    # --- Standalone commands ---
    from deliveryctl.commands.batch import batch
    from deliveryctl.commands.init_cmd import init_cmd
    from deliveryctl.commands.upgrade import upgrade

    cli.add_command(init_cmd)
    cli.add_command(batch)
    cli.add_command(upgrade)
