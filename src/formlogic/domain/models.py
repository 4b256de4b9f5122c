"""Rule, field, and derived-state models.

Models are frozen pydantic models. Python attributes are snake_case;
the wire format (form storage, authoring UI, rule documents) is camelCase
via aliases, and both spellings are accepted on input.

:class:`RuleSet` is the copy-on-write rule collection: every mutation
returns a new ``RuleSet`` and leaves the original untouched, so a
snapshot handed to an evaluation never changes underneath it.

INVARIANT: Rule IDs are permanent. ``RuleSet.replace`` matches by ID and
never renames.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field

from formlogic.domain.types import ActionKind, Attribute, FieldType, Operator

_MODEL_CONFIG: dict[str, Any] = {"frozen": True, "populate_by_name": True}


class FieldDefinition(BaseModel):
    """A field of the form, as supplied by the caller."""

    model_config = _MODEL_CONFIG

    id: str
    type: FieldType = FieldType.TEXT
    required_by_default: bool = Field(default=False, alias="requiredByDefault")
    label: str = ""


class Condition(BaseModel):
    """A single predicate over one field's current value."""

    model_config = _MODEL_CONFIG

    field_id: str = Field(alias="fieldId")
    operator: Operator
    value: Any = None


class Action(BaseModel):
    """A single effect applied to one target field."""

    model_config = _MODEL_CONFIG

    kind: ActionKind
    target_field_id: str = Field(alias="targetFieldId")
    value: Any = None


class Rule(BaseModel):
    """A named, prioritized bundle of AND-combined conditions and actions."""

    model_config = _MODEL_CONFIG

    id: str
    name: str = ""
    description: str = ""
    conditions: tuple[Condition, ...] = ()
    actions: tuple[Action, ...] = ()
    active: bool = True
    priority: int = 0

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the stable camelCase wire format."""
        return self.model_dump(mode="json", by_alias=True)


class DerivedFieldState(BaseModel):
    """Per-field output of evaluation, consumed by the renderer."""

    model_config = _MODEL_CONFIG

    visible: bool = True
    required: bool = False
    disabled: bool = False
    value_override: Any = Field(default=None, alias="valueOverride")

    @classmethod
    def default_for(cls, field: FieldDefinition) -> DerivedFieldState:
        return cls(required=field.required_by_default)

    def get(self, attribute: Attribute) -> Any:
        return getattr(self, attribute.value)

    def with_attribute(self, attribute: Attribute, value: Any) -> DerivedFieldState:
        return self.model_copy(update={attribute.value: value})

    def to_wire(self) -> dict[str, Any]:
        """Serialize for the renderer; ``valueOverride`` only when set."""
        data: dict[str, Any] = {
            "visible": self.visible,
            "required": self.required,
            "disabled": self.disabled,
        }
        if self.value_override is not None:
            data["valueOverride"] = self.value_override
        return data


@dataclass(frozen=True)
class RuleSet:
    """Immutable, insertion-ordered rule collection."""

    rules: tuple[Rule, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "rules", tuple(self.rules))

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def __contains__(self, rule_id: object) -> bool:
        return any(r.id == rule_id for r in self.rules)

    def get(self, rule_id: str) -> Rule | None:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None

    def add(self, rule: Rule) -> RuleSet:
        """Return a new set with *rule* appended.

        Raises:
            ValueError: If a rule with the same ID already exists.
        """
        if rule.id in self:
            raise ValueError(f"Duplicate rule ID: {rule.id}")
        return RuleSet(rules=(*self.rules, rule))

    def replace(self, rule: Rule) -> RuleSet:
        """Return a new set with the rule sharing *rule*'s ID swapped in place.

        Raises:
            KeyError: If no rule has that ID.
        """
        if rule.id not in self:
            raise KeyError(rule.id)
        return RuleSet(rules=tuple(rule if r.id == rule.id else r for r in self.rules))

    def remove(self, rule_id: str) -> RuleSet:
        """Return a new set without *rule_id*.

        Raises:
            KeyError: If no rule has that ID.
        """
        if rule_id not in self:
            raise KeyError(rule_id)
        return RuleSet(rules=tuple(r for r in self.rules if r.id != rule_id))

    def ordered(self) -> list[Rule]:
        """All rules by ascending priority, ties in insertion order."""
        return sorted(self.rules, key=lambda r: r.priority)

    def ordered_active(self) -> list[Rule]:
        """Active rules in application order."""
        return [r for r in self.ordered() if r.active]

    def to_wire(self) -> list[dict[str, Any]]:
        return [r.to_wire() for r in self.rules]
