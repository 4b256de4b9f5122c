"""Action application — one action becomes a delta on derived field state.

``apply_action`` is pure: it returns a new mapping and never touches the
one it was given. ``set_value`` only records ``value_override`` here; the
resolution engine folds the value into its in-pass data snapshot.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from formlogic.domain.models import Action, DerivedFieldState
from formlogic.domain.types import ACTION_EFFECTS, Attribute

DerivedStates = Mapping[str, DerivedFieldState]


def is_known_action(kind: object) -> bool:
    return kind in ACTION_EFFECTS


def action_write(action: Action) -> tuple[Attribute, Any] | None:
    """The ``(attribute, value)`` *action* writes, or None for an unknown kind."""
    effect = ACTION_EFFECTS.get(action.kind)
    if effect is None:
        return None
    attribute, fixed = effect
    return attribute, (action.value if fixed is None else fixed)


def apply_action(action: Action, derived: DerivedStates) -> dict[str, DerivedFieldState]:
    """Return a copy of *derived* with *action* applied.

    An action whose target is not in *derived*, or whose kind is unknown,
    leaves the copy unchanged.
    """
    updated = dict(derived)
    write = action_write(action)
    current = updated.get(action.target_field_id)
    if write is None or current is None:
        return updated
    attribute, value = write
    updated[action.target_field_id] = current.with_attribute(attribute, value)
    return updated
