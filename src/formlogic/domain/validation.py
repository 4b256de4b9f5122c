"""Structural validation of rules before they are accepted.

Errors block saving a rule. Warnings never block; they point rule
authors at rules that are legal but probably not what they meant
(no name, no conditions, actions that overwrite each other).

INVARIANT: Validation reports problems, it never raises for them.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from formlogic.domain.actions import action_write, is_known_action
from formlogic.domain.conditions import is_known_operator
from formlogic.domain.models import FieldDefinition, Rule
from formlogic.domain.types import ActionKind, Attribute, requires_operand


@dataclass(frozen=True)
class ValidationResult:
    """Result of a rule validation check."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _field_ids(fields: Iterable[FieldDefinition | str]) -> set[str]:
    return {f if isinstance(f, str) else f.id for f in fields}


def validate_rule(rule: Rule, fields: Iterable[FieldDefinition | str]) -> ValidationResult:
    """Check that *rule* is well-formed against the form's fields.

    Args:
        rule: The rule to check.
        fields: Field definitions (or bare field IDs) of the form.
    """
    known = _field_ids(fields)
    errors: list[str] = []
    warnings: list[str] = []

    if not rule.id.strip():
        errors.append("Rule must have an ID")

    priority = rule.priority
    if isinstance(priority, bool) or not isinstance(priority, int):
        errors.append(f"Priority must be a finite integer, got {priority!r}")

    for index, condition in enumerate(rule.conditions, start=1):
        if condition.field_id not in known:
            errors.append(f"Condition {index} references unknown field: {condition.field_id}")
        if not is_known_operator(condition.operator):
            errors.append(f"Condition {index} uses unknown operator: {condition.operator!r}")
        elif requires_operand(condition.operator) and condition.value is None:
            errors.append(
                f"Condition {index} on field {condition.field_id} "
                f"({condition.operator}) is missing a value"
            )

    for index, action in enumerate(rule.actions, start=1):
        if action.target_field_id not in known:
            errors.append(f"Action {index} references unknown field: {action.target_field_id}")
        if not is_known_action(action.kind):
            errors.append(f"Action {index} has unknown kind: {action.kind!r}")
        elif action.kind == ActionKind.SET_VALUE and action.value is None:
            errors.append(
                f"Action {index} (set_value) on field {action.target_field_id} is missing a value"
            )

    if not rule.name.strip():
        warnings.append("Rule has no name")
    if not rule.conditions:
        warnings.append("Rule has no conditions and always matches while active")
    if not rule.actions:
        warnings.append("Rule has no actions")
    warnings.extend(_contradiction_warnings(rule))

    return ValidationResult(valid=len(errors) == 0, errors=errors, warnings=warnings)


def _contradiction_warnings(rule: Rule) -> list[str]:
    """Warn where a rule's own actions write different values to one attribute."""
    writes: dict[tuple[str, Attribute], list[tuple[ActionKind, Any]]] = {}
    for action in rule.actions:
        write = action_write(action)
        if write is None:
            continue
        attribute, value = write
        writes.setdefault((action.target_field_id, attribute), []).append((action.kind, value))

    warnings: list[str] = []
    for (target, attribute), entries in writes.items():
        values = [value for _, value in entries]
        if any(value != values[0] for value in values[1:]):
            last_kind = entries[-1][0]
            warnings.append(
                f"Actions disagree on '{attribute}' of field {target}; "
                f"the last one ({last_kind}) wins"
            )
    return warnings


def _format_error(error: Mapping[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = str(error.get("msg", "invalid value"))
    return f"{location}: {message}" if location else message


def validate_rule_data(
    raw: Mapping[str, Any],
    fields: Iterable[FieldDefinition | str],
) -> tuple[Rule | None, ValidationResult]:
    """Parse a wire-format rule and validate it.

    Parse failures (unknown operator or kind, missing keys, non-integer
    priority) are reported as errors alongside the structural checks.

    Returns:
        ``(rule, result)`` where *rule* is None if parsing failed.
    """
    try:
        rule = Rule.model_validate(raw)
    except ValidationError as exc:
        errors = [_format_error(e) for e in exc.errors()]
        return None, ValidationResult(valid=False, errors=errors)
    return rule, validate_rule(rule, fields)
