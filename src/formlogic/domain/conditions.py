"""Condition evaluation against a form data snapshot.

Comparison is type-aware rather than strict:

- Two values that both parse as finite numbers (ints, floats, numeric
  strings; booleans excluded) compare numerically, so ``"9"`` equals ``9``
  and ``"1.50"`` equals ``1.5``.
- Everything else compares as normalised text. Booleans render as
  ``"true"``/``"false"`` and integral floats drop their ``.0``.
- Text comparison is case-insensitive unless ``case_sensitive`` is set.

INVARIANT: Evaluation never raises. An unknown field, an unknown operator,
or an operand the operator cannot handle all evaluate to ``False``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Collection, Iterable, Mapping
from typing import Any

from formlogic.domain.models import Condition
from formlogic.domain.types import Operator

logger = logging.getLogger(__name__)

_CHECKED_STRINGS = frozenset({"true", "on"})

# (actual field value, condition operand, case_sensitive) -> matched
OperatorHandler = Callable[[Any, Any, bool], bool]


# ---------------------------------------------------------------------------
# Value normalisation
# ---------------------------------------------------------------------------


def is_empty_value(value: Any) -> bool:
    """Absent, empty string, or empty list."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def as_number(value: Any) -> float | None:
    """Parse *value* as a finite number, or None if it is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text or "_" in text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def as_text(value: Any, *, case_sensitive: bool = False) -> str:
    """Render *value* as comparable text."""
    if value is None:
        text = ""
    elif isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, float) and value.is_integer():
        text = str(int(value))
    else:
        text = str(value)
    return text if case_sensitive else text.casefold()


def values_equal(actual: Any, expected: Any, case_sensitive: bool = False) -> bool:
    """Type-aware equality used by every comparison operator."""
    if actual is None or expected is None:
        return actual is None and expected is None
    if isinstance(actual, (list, tuple)) or isinstance(expected, (list, tuple)):
        if not (isinstance(actual, (list, tuple)) and isinstance(expected, (list, tuple))):
            return False
        return len(actual) == len(expected) and all(
            values_equal(a, e, case_sensitive) for a, e in zip(actual, expected, strict=True)
        )
    left, right = as_number(actual), as_number(expected)
    if left is not None and right is not None:
        return left == right
    return as_text(actual, case_sensitive=case_sensitive) == as_text(
        expected, case_sensitive=case_sensitive
    )


# ---------------------------------------------------------------------------
# Operator handlers
# ---------------------------------------------------------------------------


def _contains(actual: Any, expected: Any, case_sensitive: bool) -> bool:
    if actual is None or expected is None:
        return False
    if isinstance(actual, (list, tuple)):
        return any(values_equal(item, expected, case_sensitive) for item in actual)
    if isinstance(actual, dict):
        return False
    needle = as_text(expected, case_sensitive=case_sensitive)
    return needle in as_text(actual, case_sensitive=case_sensitive)


def _starts_with(actual: Any, expected: Any, case_sensitive: bool) -> bool:
    if actual is None or expected is None or isinstance(actual, (list, tuple, dict)):
        return False
    return as_text(actual, case_sensitive=case_sensitive).startswith(
        as_text(expected, case_sensitive=case_sensitive)
    )


def _ends_with(actual: Any, expected: Any, case_sensitive: bool) -> bool:
    if actual is None or expected is None or isinstance(actual, (list, tuple, dict)):
        return False
    return as_text(actual, case_sensitive=case_sensitive).endswith(
        as_text(expected, case_sensitive=case_sensitive)
    )


def _greater_than(actual: Any, expected: Any, _case_sensitive: bool) -> bool:
    left, right = as_number(actual), as_number(expected)
    return left is not None and right is not None and left > right


def _less_than(actual: Any, expected: Any, _case_sensitive: bool) -> bool:
    left, right = as_number(actual), as_number(expected)
    return left is not None and right is not None and left < right


def _is_checked(actual: Any, _expected: Any, _case_sensitive: bool) -> bool:
    if actual is True:
        return True
    return isinstance(actual, str) and actual.strip().lower() in _CHECKED_STRINGS


def _is_one_of(actual: Any, expected: Any, case_sensitive: bool) -> bool:
    if isinstance(expected, (list, tuple)):
        return any(values_equal(actual, option, case_sensitive) for option in expected)
    return values_equal(actual, expected, case_sensitive)


def _negate(handler: OperatorHandler) -> OperatorHandler:
    def negated(actual: Any, expected: Any, case_sensitive: bool) -> bool:
        return not handler(actual, expected, case_sensitive)

    return negated


def _is_empty(actual: Any, _expected: Any, _case_sensitive: bool) -> bool:
    return is_empty_value(actual)


OPERATOR_HANDLERS: dict[Operator, OperatorHandler] = {
    Operator.EQUALS: values_equal,
    Operator.NOT_EQUALS: _negate(values_equal),
    Operator.CONTAINS: _contains,
    Operator.NOT_CONTAINS: _negate(_contains),
    Operator.STARTS_WITH: _starts_with,
    Operator.ENDS_WITH: _ends_with,
    Operator.GREATER_THAN: _greater_than,
    Operator.LESS_THAN: _less_than,
    Operator.IS_EMPTY: _is_empty,
    Operator.IS_NOT_EMPTY: _negate(_is_empty),
    Operator.IS_CHECKED: _is_checked,
    Operator.IS_NOT_CHECKED: _negate(_is_checked),
    Operator.IS_ONE_OF: _is_one_of,
    Operator.IS_NOT_ONE_OF: _negate(_is_one_of),
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def is_known_operator(operator: object) -> bool:
    return operator in OPERATOR_HANDLERS


def evaluate_condition(
    condition: Condition,
    snapshot: Mapping[str, Any],
    *,
    field_ids: Collection[str] | None = None,
    case_sensitive: bool = False,
) -> bool:
    """Evaluate one condition against *snapshot*.

    Args:
        condition: The condition to check.
        snapshot: Effective form data (caller values merged with overrides).
        field_ids: Known field IDs. When given, a condition on any other
            field never matches.
        case_sensitive: Compare text exactly instead of case-folded.
    """
    if field_ids is not None and condition.field_id not in field_ids:
        return False
    handler = OPERATOR_HANDLERS.get(condition.operator)
    if handler is None:
        return False
    try:
        return bool(handler(snapshot.get(condition.field_id), condition.value, case_sensitive))
    except (TypeError, ValueError, OverflowError):
        logger.debug("Condition on %s could not be evaluated", condition.field_id, exc_info=True)
        return False


def evaluate_all(
    conditions: Iterable[Condition],
    snapshot: Mapping[str, Any],
    *,
    field_ids: Collection[str] | None = None,
    case_sensitive: bool = False,
) -> bool:
    """AND-combine *conditions*. An empty list matches."""
    return all(
        evaluate_condition(c, snapshot, field_ids=field_ids, case_sensitive=case_sensitive)
        for c in conditions
    )
