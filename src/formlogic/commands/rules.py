"""Command group: inspect and edit the form's rules."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from formlogic.commands._base import FormLogicGroup
from formlogic.infrastructure.filesystem import (
    DocumentError,
    is_yaml,
    parse_document,
    read_document,
)
from formlogic.services.rules import RuleService

if TYPE_CHECKING:
    from formlogic.commands._context import AppContext

_RULES_EXAMPLES = """\
  formlogic rules list
  formlogic rules show rule_1700000000000_abc123xyz
  formlogic rules add '{"name": "Show state", "conditions": [...], "actions": [...]}'
  formlogic rules add @new-rule.json
  formlogic rules disable rule_1700000000000_abc123xyz
  formlogic rules export --yaml > rules.yaml
  formlogic rules import rules.yaml"""


def read_rule_argument(value: str) -> dict[str, Any]:
    """Parse an inline JSON object, or ``@path`` to a JSON/YAML file."""
    try:
        if value.startswith("@"):
            document = read_document(Path(value[1:]))
        else:
            document = parse_document(value)
    except DocumentError as exc:
        raise click.BadParameter(str(exc)) from exc
    if not isinstance(document, dict):
        raise click.BadParameter("expected a JSON object describing a rule")
    return document


@click.group(cls=FormLogicGroup, examples=_RULES_EXAMPLES)
@click.pass_obj
def rules(app: AppContext) -> None:
    """List, add, edit, toggle, import and export rules."""


@rules.command(
    name="list",
    examples="""\
  formlogic rules list
  formlogic rules list --active
  formlogic -q rules list""",
)
@click.option("--active", "active_only", is_flag=True, help="Only active rules.")
@click.pass_obj
def list_cmd(app: AppContext, active_only: bool) -> None:
    """List rules in the order they are applied."""
    app.emit(RuleService(app.store).list_rules(active_only=active_only))


@rules.command(
    examples="""\
  formlogic rules show rule_1700000000000_abc123xyz
  formlogic --json rules show rule_1700000000000_abc123xyz"""
)
@click.argument("rule_id")
@click.pass_obj
def show(app: AppContext, rule_id: str) -> None:
    """Show one rule with its conditions and actions."""
    app.emit(RuleService(app.store).get_rule(rule_id))


@rules.command(
    examples="""\
  formlogic rules add @rule.json
  formlogic rules add '{"name": "Require phone", "conditions":
    [{"fieldId": "contact", "operator": "equals", "value": "phone"}],
    "actions": [{"kind": "require_field", "targetFieldId": "phone"}]}'"""
)
@click.argument("rule", metavar="JSON|@PATH")
@click.pass_obj
def add(app: AppContext, rule: str) -> None:
    """Add a rule. Its ID is generated; priority defaults to last."""
    app.emit(RuleService(app.store).add_rule(read_rule_argument(rule)))


@rules.command(
    examples="""\
  formlogic rules update rule_1700000000000_abc123xyz '{"priority": 0}'
  formlogic rules update rule_1700000000000_abc123xyz @patch.yaml"""
)
@click.argument("rule_id")
@click.argument("patch", metavar="JSON|@PATH")
@click.pass_obj
def update(app: AppContext, rule_id: str, patch: str) -> None:
    """Merge a partial rule into an existing one."""
    app.emit(RuleService(app.store).update_rule(rule_id, read_rule_argument(patch)))


@rules.command(examples="  formlogic rules remove rule_1700000000000_abc123xyz")
@click.argument("rule_id")
@click.pass_obj
def remove(app: AppContext, rule_id: str) -> None:
    """Delete a rule."""
    app.emit(RuleService(app.store).remove_rule(rule_id))


@rules.command(examples="  formlogic rules enable rule_1700000000000_abc123xyz")
@click.argument("rule_id")
@click.pass_obj
def enable(app: AppContext, rule_id: str) -> None:
    """Make a rule active."""
    app.emit(RuleService(app.store).set_active(rule_id, True))


@rules.command(examples="  formlogic rules disable rule_1700000000000_abc123xyz")
@click.argument("rule_id")
@click.pass_obj
def disable(app: AppContext, rule_id: str) -> None:
    """Keep a rule but stop applying it."""
    app.emit(RuleService(app.store).set_active(rule_id, False))


@rules.command(
    examples="""\
  formlogic rules check '{"conditions": [], "actions": []}'
  formlogic rules check @draft.yaml"""
)
@click.argument("rule", metavar="JSON|@PATH")
@click.pass_obj
def check(app: AppContext, rule: str) -> None:
    """Validate a rule against the form's fields without saving it."""
    app.emit(RuleService(app.open_form()).validate_rule(read_rule_argument(rule)))


@rules.command(
    examples="""\
  formlogic rules export > backup.json
  formlogic rules export --yaml > rules.yaml"""
)
@click.option("--yaml", "as_yaml", is_flag=True, help="YAML instead of JSON.")
@click.pass_obj
def export(app: AppContext, as_yaml: bool) -> None:
    """Print the rule set in the stable document format."""
    app.emit(RuleService(app.store).export_rules(yaml=as_yaml))


@rules.command(
    name="import",
    examples="""\
  formlogic rules import backup.json
  formlogic rules import rules.yaml""",
)
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def import_cmd(app: AppContext, path: Path) -> None:
    """Replace every rule with the rules in PATH (all or nothing).

    The current rules document is not validated first, so import can
    repair a broken one.
    """
    text = path.read_text(encoding="utf-8")
    app.emit(RuleService(app.open_form()).import_rules(text, yaml=is_yaml(path)))
