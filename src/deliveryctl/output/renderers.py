"""Rich renderers for ServiceResult.

Results carrying a ``rows`` list render as a table; everything else
renders as indented key-value fields. Errors render on one line, with
the error detail underneath in verbose mode.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from deliveryctl.output.console import create_console, get_output, style_for_status

if TYPE_CHECKING:
    from rich.console import Console

    from deliveryctl.services.result import ServiceResult

_MONEY_KEYS = frozenset({"amount", "total_amount"})


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()
    if not result.ok:
        _render_error(result, console, verbose=verbose)
    elif isinstance(result.data.get("rows"), list):
        _render_rows(result, console)
    else:
        _render_fields(result, console, verbose=verbose)
    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Minimal output for ``--quiet`` mode: IDs for row results, else status."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"
    rows = result.data.get("rows")
    if isinstance(rows, list):
        return "\n".join(str(_row_id(row)) for row in rows if _row_id(row) is not None)
    return f"OK: {result.op}"


def _row_id(row: Any) -> Any:
    if not isinstance(row, dict):
        return None
    for key in ("id", "order_id", "payment_id", "customer_id"):
        if row.get(key) is not None:
            return row[key]
    return None


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="dlv.ok"), Text(f"  {result.op}", style="dlv.op"))


def _value_text(key: str, value: Any) -> Text:
    if isinstance(value, (dict, list)):
        return Text(json.dumps(value, separators=(",", ":")))
    if key == "id" or key.endswith("_id"):
        return Text(str(value), style="dlv.id")
    if key in _MONEY_KEYS:
        return Text(str(value), style="dlv.money")
    if key.endswith("status") and isinstance(value, str):
        return Text(value, style=style_for_status(value))
    return Text(str(value))


def _render_fields(result: ServiceResult, console: Console, *, verbose: bool) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        if key == "changes" and not verbose:
            continue
        console.print(Text(f"  {key}: ", style="dlv.key"), _value_text(key, value), sep="")


def _render_rows(result: ServiceResult, console: Console) -> None:
    _status_line(console, result)
    rows: list[dict[str, Any]] = result.data["rows"]
    if not rows:
        console.print(Text("  (no rows)", style="dim"))
        return
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    columns = list(rows[0])
    for col in columns:
        justify = "right" if col in _MONEY_KEYS or col == "age" else "left"
        table.add_column(col.replace("_", " ").title(), justify=justify)
    for row in rows:
        table.add_row(*(_value_text(col, row.get(col, "")) for col in columns))
    console.print(table)


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    console.print(
        Text("ERROR", style="dlv.error"),
        Text(f"  {result.op}", style="dlv.op"),
        Text(" — "),
        msg,
        sep="",
    )
    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")
