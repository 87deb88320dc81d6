"""deliveryctl entry point: global flags, settings resolution, subcommands."""

from __future__ import annotations

from pathlib import Path

import click

from deliveryctl import __version__
from deliveryctl.commands import register_commands
from deliveryctl.commands._context import AppContext
from deliveryctl.config.settings import DeliverySettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="deliveryctl")
@click.option(
    "-s",
    "--store",
    "store_root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Store directory (default: where deliveryctl.toml is found, else CWD).",
)
@click.option("-c", "--config", "config_path", default=None, help="Use this config file.")
@click.option("--json", "json_output", is_flag=True, help="Print results as JSON.")
@click.option("-q", "--quiet", is_flag=True, help="Print only IDs or OK/ERROR.")
@click.option("-v", "--verbose", is_flag=True, help="Show change journals and debug logs.")
@click.option("--log-json", is_flag=True, help="Emit logs to stderr as JSON lines.")
@click.pass_context
def cli(
    ctx: click.Context,
    store_root: Path | None,
    config_path: str | None,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
) -> None:
    """deliveryctl: customers, delivery agents, orders and payments in SQLite.

    Order writes run through three rules: an agent takes one order at a
    time, placing an order updates the customer's address, and
    completing an order completes its payment.
    """
    settings = DeliverySettings.from_cli(
        config_path=config_path,
        store_root=store_root.resolve() if store_root else None,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
    )
    app = AppContext(settings)
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
