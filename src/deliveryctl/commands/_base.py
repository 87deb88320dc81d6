"""Click base classes adding an ``--examples`` flag.

``--help`` stays short; ``deliveryctl order place --examples`` prints
ready-to-run invocations instead. The help epilog points at the flag.
"""

from __future__ import annotations

from typing import Any

import click

_EXAMPLES_HINT = "Run with --examples for sample invocations."


class _ExamplesMixin:
    """Shared ``examples=`` handling for commands and groups."""

    examples: str | None

    def _init_examples(self, examples: str | None) -> None:
        self.examples = examples
        if not examples:
            return
        self.params.append(  # type: ignore[attr-defined]
            click.Option(
                ["--examples"],
                is_flag=True,
                expose_value=False,
                is_eager=True,
                callback=self._print_examples,
                help="Show usage examples and exit.",
            )
        )
        if self.epilog is None:  # type: ignore[attr-defined]
            self.epilog = _EXAMPLES_HINT  # type: ignore[attr-defined]

    def _print_examples(self, ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or ctx.resilient_parsing:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(self.examples)
        ctx.exit(0)


class DlvCommand(_ExamplesMixin, click.Command):
    """Command accepting ``examples=``."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._init_examples(examples)


class DlvGroup(_ExamplesMixin, click.Group):
    """Group accepting ``examples=``; subcommands default to :class:`DlvCommand`."""

    command_class = DlvCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._init_examples(examples)
