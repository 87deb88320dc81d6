"""Command: store initialization (named init_cmd to avoid shadowing builtins)."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from deliveryctl.commands._base import DlvCommand

if TYPE_CHECKING:
    from deliveryctl.commands._context import AppContext

_INIT_EXAMPLES = """\
  deliveryctl init
  deliveryctl init /srv/delivery
  deliveryctl init . --db-filename orders.db"""


@click.command("init", cls=DlvCommand, examples=_INIT_EXAMPLES)
@click.argument("path", required=False, default=".")
@click.option("--db-filename", default=None, help="Database file name inside .deliveryctl/.")
@click.pass_obj
def init_cmd(app: AppContext, path: str, db_filename: str | None) -> None:
    """Initialize a delivery store at PATH (default: current directory)."""
    from deliveryctl.services.init import InitService

    app.emit(InitService.init_store(Path(path).resolve(), db_filename=db_filename))
