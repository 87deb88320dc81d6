"""Command: bring the store database to the latest schema revision."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from deliveryctl.commands._base import DlvCommand

if TYPE_CHECKING:
    from deliveryctl.commands._context import AppContext


@click.command(
    cls=DlvCommand,
    examples="""\
  deliveryctl upgrade --check
  deliveryctl upgrade
  deliveryctl --json upgrade --no-backup""",
)
@click.option("--check", "check_only", is_flag=True, help="List pending revisions only.")
@click.option(
    "--backup/--no-backup",
    default=True,
    show_default=True,
    help="Snapshot the database into .deliveryctl/backups/ before migrating.",
)
@click.pass_obj
def upgrade(app: AppContext, check_only: bool, backup: bool) -> None:
    """Apply pending schema migrations."""
    from deliveryctl.services.upgrade import UpgradeService

    svc = UpgradeService(app.store)
    if check_only:
        app.emit(svc.check_pending())
    else:
        app.emit(svc.apply(backup=backup))
