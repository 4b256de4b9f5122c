"""Click base classes whose commands carry usage examples.

``--help`` stays short; ``--examples`` prints the command's examples and
exits before any argument is validated or any document is read.
"""

from __future__ import annotations

from typing import Any

import click


def _examples_option(examples: str) -> click.Option:
    def show(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if value and not ctx.resilient_parsing:
            click.echo(f"Examples for '{ctx.command_path}':\n\n{examples}")
            ctx.exit(0)

    return click.Option(
        ["--examples"],
        is_flag=True,
        expose_value=False,
        is_eager=True,
        callback=show,
        help="Show usage examples and exit.",
    )


class _ExamplesMixin:
    """Accept ``examples=`` and expose it as ``--examples``."""

    params: list[click.Parameter]

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            self.params.append(_examples_option(examples))


class FormLogicCommand(_ExamplesMixin, click.Command):
    pass


class FormLogicGroup(_ExamplesMixin, click.Group):
    """Group whose subcommands are FormLogicCommands, so ``examples=`` works without ``cls=``."""

    command_class = FormLogicCommand
