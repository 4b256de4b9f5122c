"""Command: validate every rule in the rules document."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from formlogic.commands._base import FormLogicCommand

if TYPE_CHECKING:
    from formlogic.commands._context import AppContext


@click.command(
    cls=FormLogicCommand,
    examples="""\
  formlogic validate
  formlogic validate --strict
  formlogic --rules other-rules.yaml validate
  formlogic --json validate""",
)
@click.option("--strict", is_flag=True, help="Exit 1 when any rule is invalid.")
@click.pass_obj
def validate(app: AppContext, strict: bool) -> None:
    """Check the rules document against the form's fields.

    Unlike other commands this reads the rules without loading them, so
    a document with invalid rules can still be inspected.
    """
    from formlogic.services.rules import RuleService

    result = RuleService(app.open_form()).validate_all(app.raw_rules)
    app.emit(result)
    if strict and result.data.get("invalid_count"):
        raise SystemExit(1)
