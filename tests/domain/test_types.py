"""Tests for the closed operator and action taxonomies."""

from __future__ import annotations

from formlogic.domain.conditions import OPERATOR_HANDLERS
from formlogic.domain.types import (
    ACTION_EFFECTS,
    UNARY_OPERATORS,
    ActionKind,
    Attribute,
    FieldType,
    Operator,
    requires_operand,
)


class TestExhaustiveness:
    def test_every_operator_has_a_handler(self) -> None:
        assert set(OPERATOR_HANDLERS) == set(Operator)

    def test_every_action_kind_has_an_effect(self) -> None:
        assert set(ACTION_EFFECTS) == set(ActionKind)


class TestOperator:
    def test_wire_values(self) -> None:
        assert Operator("equals") is Operator.EQUALS
        assert Operator("is_not_one_of") is Operator.IS_NOT_ONE_OF
        assert str(Operator.NOT_CONTAINS) == "not_contains"

    def test_unary_operators_need_no_operand(self) -> None:
        for op in UNARY_OPERATORS:
            assert requires_operand(op) is False
        assert requires_operand(Operator.EQUALS) is True
        assert requires_operand(Operator.IS_ONE_OF) is True


class TestActionEffects:
    def test_visibility_actions(self) -> None:
        assert ACTION_EFFECTS[ActionKind.SHOW_FIELD] == (Attribute.VISIBLE, True)
        assert ACTION_EFFECTS[ActionKind.HIDE_FIELD] == (Attribute.VISIBLE, False)

    def test_set_value_takes_action_value(self) -> None:
        assert ACTION_EFFECTS[ActionKind.SET_VALUE] == (Attribute.VALUE_OVERRIDE, None)

    def test_disable_writes_disabled(self) -> None:
        assert ACTION_EFFECTS[ActionKind.DISABLE_FIELD] == (Attribute.DISABLED, True)
        assert ACTION_EFFECTS[ActionKind.ENABLE_FIELD] == (Attribute.DISABLED, False)


class TestFieldType:
    def test_common_types(self) -> None:
        assert FieldType("select") is FieldType.SELECT
        assert FieldType("file_upload") is FieldType.FILE_UPLOAD
        assert len(FieldType) > 30
