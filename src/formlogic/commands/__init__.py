"""Subcommand modules for formlogic.

Provides register_commands() which uses deferred imports to keep
``formlogic --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the ``rules`` group and the standalone commands on the root group."""
    # --- Groups ---
    from formlogic.commands.rules import rules

    cli.add_command(rules)

    # --- Standalone commands ---
    from formlogic.commands.evaluate import evaluate
    from formlogic.commands.validate import validate

    cli.add_command(evaluate)
    cli.add_command(validate)
