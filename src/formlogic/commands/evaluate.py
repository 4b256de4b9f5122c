"""Command: evaluate the rules against a form data snapshot."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import click

from formlogic.commands._base import FormLogicCommand

if TYPE_CHECKING:
    from formlogic.commands._context import AppContext


def parse_assignment(raw: str) -> tuple[str, Any]:
    """Split ``KEY=VALUE``; VALUE is read as JSON when it parses, else as text.

    ``age=20`` gives ``20``, ``ok=true`` gives ``True``, ``name=Ada`` gives
    ``"Ada"``, and ``tags=["a","b"]`` gives a list.
    """
    key, sep, value = raw.partition("=")
    if not sep or not key.strip():
        raise click.BadParameter(f"expected KEY=VALUE, got {raw!r}", param_hint="--set")
    try:
        parsed: Any = json.loads(value)
    except ValueError:
        parsed = value
    return key.strip(), parsed


@click.command(
    cls=FormLogicCommand,
    examples="""\
  formlogic evaluate --set country=US --set age=20
  formlogic evaluate --data answers.json
  formlogic evaluate --data answers.yaml --set newsletter=true
  formlogic evaluate --brief --set country=US
  formlogic --json evaluate --data answers.json""",
)
@click.option(
    "--data",
    "data_path",
    type=click.Path(dir_okay=False, path_type=str),
    default=None,
    help="JSON/YAML object of field values.",
)
@click.option(
    "--set",
    "assignments",
    multiple=True,
    metavar="KEY=VALUE",
    help="Set one field value (repeatable; applied over --data).",
)
@click.option("--brief", is_flag=True, help="Field states only, without the rule diagnostics.")
@click.pass_obj
def evaluate(
    app: AppContext,
    data_path: str | None,
    assignments: tuple[str, ...],
    brief: bool,
) -> None:
    """Show the derived state of every field for the given form data."""
    from pathlib import Path

    from formlogic.infrastructure.filesystem import DocumentError, load_data
    from formlogic.services.evaluation import EvaluationService

    data: dict[str, Any] = {}
    if data_path:
        try:
            data = load_data(Path(data_path))
        except DocumentError as exc:
            raise click.ClickException(str(exc)) from exc
    for raw in assignments:
        key, value = parse_assignment(raw)
        data[key] = value

    svc = EvaluationService(app.store)
    app.emit(svc.update_form_data(data) if brief else svc.run_test(data))
