"""Command: run a JSON script of steps as a single unit of work."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

from deliveryctl.commands._base import DlvCommand
from deliveryctl.services.result import ServiceResult

if TYPE_CHECKING:
    from deliveryctl.commands._context import AppContext

_BATCH_EXAMPLES = """\
  deliveryctl batch steps.json
  cat steps.json | deliveryctl --json batch -

  steps.json:
  [
    {"op": "add_agent", "id": 3, "name": "Meera"},
    {"op": "savepoint", "name": "before_order"},
    {"op": "place_order", "id": 1010, "customer_id": 106,
     "delivery_agent_id": 3, "total_amount": 180},
    {"op": "rollback_to", "name": "before_order"},
    {"op": "commit"}
  ]"""


@click.command(cls=DlvCommand, examples=_BATCH_EXAMPLES)
@click.argument("file")
@click.pass_obj
def batch(app: AppContext, file: str) -> None:
    """Run the steps in FILE (a JSON array, or - for stdin) in one unit of work.

    Steps run in order; the first failure rolls everything back.
    """
    from deliveryctl.services.batch import BatchService

    try:
        raw = sys.stdin.read() if file == "-" else Path(file).read_text(encoding="utf-8")
        steps = json.loads(raw)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        app.emit(
            ServiceResult.failure(
                "batch", "INVALID_FILE", f"Cannot read batch file {file}: {exc}", file=file
            )
        )
        return

    app.emit(BatchService(app.store).run(steps))
