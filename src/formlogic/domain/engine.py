"""Resolution engine — fixed-point evaluation of a rule set.

One call to :func:`resolve` runs a bounded sequence of passes:

1. Every pass starts from the field defaults: required by default,
   enabled, no override, and visible unless some active rule has a
   ``show_field`` action for the field (a field that is shown
   conditionally starts hidden).
2. The pass snapshot is the caller's data merged with the value
   overrides produced by the previous pass.
3. Active rules run in ascending priority (ties in insertion order).
   A rule whose conditions all match applies its actions in list order,
   and ``set_value`` is folded into the snapshot immediately so later
   rules in the same pass see it.
4. When a pass produces the same derived state as the one before it
   (the first pass compares against the defaults), the result is stable.

If ``max_passes`` is reached without a stable pass, the last state is
returned with a ``NON_CONVERGENT`` warning.

Conflicts resolve as last write wins: a later rule beats an earlier one,
and within a rule the later action beats the earlier one. Conflicts seen
in the final pass are reported for the diagnostic view.

INVARIANT: ``resolve`` is total. It never raises for any combination of
fields, rules, and data, and it holds no state between calls.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from formlogic.domain.actions import action_write, apply_action, is_known_action
from formlogic.domain.conditions import evaluate_all, is_known_operator
from formlogic.domain.models import DerivedFieldState, FieldDefinition, Rule, RuleSet
from formlogic.domain.types import ActionKind, Attribute

logger = logging.getLogger(__name__)

DEFAULT_MAX_PASSES = 5


class WarningCode(StrEnum):
    """Non-fatal issues recorded during evaluation."""

    UNKNOWN_FIELD = "UNKNOWN_FIELD"
    UNKNOWN_OPERATOR = "UNKNOWN_OPERATOR"
    UNKNOWN_TARGET = "UNKNOWN_TARGET"
    UNKNOWN_ACTION = "UNKNOWN_ACTION"
    NON_CONVERGENT = "NON_CONVERGENT"


@dataclass(frozen=True)
class EvaluationWarning:
    """A runtime issue that did not stop evaluation."""

    code: WarningCode
    message: str
    rule_id: str | None = None
    field_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": str(self.code),
            "message": self.message,
            "rule_id": self.rule_id,
            "field_id": self.field_id,
        }


@dataclass(frozen=True)
class Conflict:
    """Two writes to the same attribute of the same field disagreed."""

    field_id: str
    attribute: Attribute
    overridden_rule_id: str
    winning_rule_id: str
    overridden_value: Any
    winning_value: Any

    def to_dict(self) -> dict[str, Any]:
        return {
            "field_id": self.field_id,
            "attribute": str(self.attribute),
            "overridden_rule_id": self.overridden_rule_id,
            "winning_rule_id": self.winning_rule_id,
            "overridden_value": self.overridden_value,
            "winning_value": self.winning_value,
        }


@dataclass(frozen=True)
class Resolution:
    """Outcome of one :func:`resolve` call."""

    states: dict[str, DerivedFieldState]
    passes: int
    converged: bool
    warnings: tuple[EvaluationWarning, ...] = ()
    matched_rules: tuple[str, ...] = ()
    conflicts: tuple[Conflict, ...] = ()

    def to_wire(self) -> dict[str, dict[str, Any]]:
        """The renderer-facing map: field ID -> derived state."""
        return {field_id: state.to_wire() for field_id, state in self.states.items()}


@dataclass
class _PassOutcome:
    states: dict[str, DerivedFieldState]
    matched: list[str] = field(default_factory=list)
    conflicts: list[Conflict] = field(default_factory=list)


class _WarningLog:
    """Collect warnings once each, in first-seen order."""

    def __init__(self) -> None:
        self._seen: dict[tuple[WarningCode, str | None, str | None], EvaluationWarning] = {}

    def add(
        self,
        code: WarningCode,
        message: str,
        *,
        rule_id: str | None = None,
        field_id: str | None = None,
    ) -> None:
        key = (code, rule_id, field_id)
        if key not in self._seen:
            self._seen[key] = EvaluationWarning(code, message, rule_id, field_id)

    def freeze(self) -> tuple[EvaluationWarning, ...]:
        return tuple(self._seen.values())


def conditionally_shown(rules: Iterable[Rule]) -> frozenset[str]:
    """Fields some rule in *rules* can show; these start hidden."""
    return frozenset(
        action.target_field_id
        for rule in rules
        for action in rule.actions
        if action.kind == ActionKind.SHOW_FIELD
    )


def default_states(
    fields: Iterable[FieldDefinition],
    hidden: Collection[str] = frozenset(),
) -> dict[str, DerivedFieldState]:
    """Derived state for every field before any rule runs."""
    states: dict[str, DerivedFieldState] = {}
    for f in fields:
        state = DerivedFieldState.default_for(f)
        if f.id in hidden:
            state = state.with_attribute(Attribute.VISIBLE, False)
        states[f.id] = state
    return states


def _overrides(states: Mapping[str, DerivedFieldState]) -> dict[str, Any]:
    return {
        field_id: state.value_override
        for field_id, state in states.items()
        if state.value_override is not None
    }


def _rule_matches(
    rule: Rule,
    snapshot: Mapping[str, Any],
    field_ids: frozenset[str],
    case_sensitive: bool,
    warnings: _WarningLog,
) -> bool:
    # Unknown references are reported even when an earlier condition fails.
    for condition in rule.conditions:
        if condition.field_id not in field_ids:
            warnings.add(
                WarningCode.UNKNOWN_FIELD,
                f"Rule {rule.id} has a condition on unknown field {condition.field_id}",
                rule_id=rule.id,
                field_id=condition.field_id,
            )
        elif not is_known_operator(condition.operator):
            warnings.add(
                WarningCode.UNKNOWN_OPERATOR,
                f"Rule {rule.id} uses unknown operator {condition.operator!r}",
                rule_id=rule.id,
                field_id=condition.field_id,
            )
    return evaluate_all(
        rule.conditions, snapshot, field_ids=field_ids, case_sensitive=case_sensitive
    )


def _run_pass(
    ordered: list[Rule],
    defaults: dict[str, DerivedFieldState],
    data: Mapping[str, Any],
    previous: Mapping[str, DerivedFieldState],
    field_ids: frozenset[str],
    case_sensitive: bool,
    warnings: _WarningLog,
) -> _PassOutcome:
    snapshot: dict[str, Any] = {**data, **_overrides(previous)}
    outcome = _PassOutcome(states=dict(defaults))
    last_writer: dict[tuple[str, Attribute], tuple[str, Any]] = {}

    for rule in ordered:
        if not _rule_matches(rule, snapshot, field_ids, case_sensitive, warnings):
            continue
        outcome.matched.append(rule.id)
        for action in rule.actions:
            target = action.target_field_id
            if not is_known_action(action.kind):
                warnings.add(
                    WarningCode.UNKNOWN_ACTION,
                    f"Rule {rule.id} has an action of unknown kind {action.kind!r}",
                    rule_id=rule.id,
                    field_id=target,
                )
                continue
            if target not in field_ids:
                warnings.add(
                    WarningCode.UNKNOWN_TARGET,
                    f"Rule {rule.id} targets unknown field {target}",
                    rule_id=rule.id,
                    field_id=target,
                )
                continue

            write = action_write(action)
            if write is not None:
                attribute, value = write
                prior = last_writer.get((target, attribute))
                if prior is not None and prior[1] != value:
                    outcome.conflicts.append(
                        Conflict(
                            field_id=target,
                            attribute=attribute,
                            overridden_rule_id=prior[0],
                            winning_rule_id=rule.id,
                            overridden_value=prior[1],
                            winning_value=value,
                        )
                    )
                last_writer[(target, attribute)] = (rule.id, value)

            outcome.states = apply_action(action, outcome.states)
            if action.kind == ActionKind.SET_VALUE and action.value is not None:
                snapshot[target] = action.value

    return outcome


def resolve(
    fields: Iterable[FieldDefinition],
    rules: RuleSet | Iterable[Rule],
    data: Mapping[str, Any] | None = None,
    *,
    max_passes: int = DEFAULT_MAX_PASSES,
    case_sensitive: bool = False,
) -> Resolution:
    """Compute derived field state for *data* under *rules*.

    Args:
        fields: Field definitions of the form (caller-owned, not mutated).
        rules: The rule snapshot to apply. Inactive rules are skipped.
        data: Current field values keyed by field ID.
        max_passes: Upper bound on evaluation passes (at least 1).
        case_sensitive: Compare text exactly instead of case-folded.
    """
    field_list = list(fields)
    field_ids = frozenset(f.id for f in field_list)
    rule_set = rules if isinstance(rules, RuleSet) else RuleSet(rules=tuple(rules))
    ordered = rule_set.ordered_active()
    values: Mapping[str, Any] = data if data is not None else {}
    cap = max(1, max_passes)

    defaults = default_states(field_list, hidden=conditionally_shown(ordered))
    warnings = _WarningLog()
    previous: dict[str, DerivedFieldState] = defaults
    outcome = _PassOutcome(states=defaults)
    converged = False
    passes = 0

    while passes < cap:
        passes += 1
        outcome = _run_pass(
            ordered, defaults, values, previous, field_ids, case_sensitive, warnings
        )
        logger.debug(
            "Pass %d: %d of %d rules matched", passes, len(outcome.matched), len(ordered)
        )
        if outcome.states == previous:
            converged = True
            break
        previous = outcome.states

    if not converged:
        warnings.add(
            WarningCode.NON_CONVERGENT,
            f"Rules did not stabilise within {cap} passes; returning the last result",
        )

    return Resolution(
        states=outcome.states,
        passes=passes,
        converged=converged,
        warnings=warnings.freeze(),
        matched_rules=tuple(outcome.matched),
        conflicts=tuple(outcome.conflicts),
    )
