"""Closed taxonomies for field kinds, condition operators, and action kinds.

Operators and action kinds travel as plain strings in the wire format.
Inside the engine they are always one of these enums, and every member
must have a handler in :mod:`formlogic.domain.conditions` or
:mod:`formlogic.domain.actions`.
"""

from __future__ import annotations

from enum import StrEnum


class FieldType(StrEnum):
    """Kinds of form field a form may declare."""

    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    NUMBER = "number"
    TEXTAREA = "textarea"
    RICHTEXT = "richtext"
    SELECT = "select"
    MULTISELECT = "multiselect"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    FILE = "file"
    FILE_UPLOAD = "file_upload"
    RATING = "rating"
    RANGE = "range"
    SIGNATURE = "signature"
    MATRIX = "matrix"
    DATERANGE = "daterange"
    COLOR = "color"
    URL = "url"
    PASSWORD = "password"
    HIDDEN = "hidden"
    DIVIDER = "divider"
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    HTML = "html"
    PAGEBREAK = "pagebreak"
    COUNTRY = "country"
    ADDRESS = "address"
    NAME = "name"
    CURRENCY = "currency"
    PAYMENT = "payment"
    CALCULATION = "calculation"


class Operator(StrEnum):
    """Comparison operators a condition may use."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"
    IS_CHECKED = "is_checked"
    IS_NOT_CHECKED = "is_not_checked"
    IS_ONE_OF = "is_one_of"
    IS_NOT_ONE_OF = "is_not_one_of"


class ActionKind(StrEnum):
    """Effects an action may have on its target field."""

    SHOW_FIELD = "show_field"
    HIDE_FIELD = "hide_field"
    REQUIRE_FIELD = "require_field"
    OPTIONAL_FIELD = "optional_field"
    ENABLE_FIELD = "enable_field"
    DISABLE_FIELD = "disable_field"
    SET_VALUE = "set_value"


class Attribute(StrEnum):
    """Derived-state attributes an action writes."""

    VISIBLE = "visible"
    REQUIRED = "required"
    DISABLED = "disabled"
    VALUE_OVERRIDE = "value_override"


# Operators that inspect only the field value (no comparison operand).
UNARY_OPERATORS: frozenset[Operator] = frozenset(
    {
        Operator.IS_EMPTY,
        Operator.IS_NOT_EMPTY,
        Operator.IS_CHECKED,
        Operator.IS_NOT_CHECKED,
    }
)

# Attribute written by each action kind, and the value written (None = action.value).
ACTION_EFFECTS: dict[ActionKind, tuple[Attribute, bool | None]] = {
    ActionKind.SHOW_FIELD: (Attribute.VISIBLE, True),
    ActionKind.HIDE_FIELD: (Attribute.VISIBLE, False),
    ActionKind.REQUIRE_FIELD: (Attribute.REQUIRED, True),
    ActionKind.OPTIONAL_FIELD: (Attribute.REQUIRED, False),
    ActionKind.ENABLE_FIELD: (Attribute.DISABLED, False),
    ActionKind.DISABLE_FIELD: (Attribute.DISABLED, True),
    ActionKind.SET_VALUE: (Attribute.VALUE_OVERRIDE, None),
}


def requires_operand(operator: Operator) -> bool:
    """Whether *operator* compares against ``condition.value``."""
    return operator not in UNARY_OPERATORS
