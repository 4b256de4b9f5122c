"""Shared pytest fixtures and test helpers for formlogic tests."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Generator, Sequence
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from formlogic.domain.models import FieldDefinition, Rule
from formlogic.infrastructure.store import FormStore
from formlogic.services.telemetry import disable_telemetry

# A sign-up form used across the suite.
SIGNUP_FIELDS: list[dict[str, Any]] = [
    {"id": "country", "type": "select", "label": "Country"},
    {"id": "state", "type": "text", "label": "State"},
    {"id": "age", "type": "number", "label": "Age"},
    {"id": "guardian", "type": "text", "label": "Guardian name"},
    {"id": "newsletter", "type": "checkbox", "label": "Send me news"},
    {"id": "email", "type": "email", "label": "Email", "requiredByDefault": True},
    {"id": "contact", "type": "radio", "label": "Preferred contact"},
    {"id": "phone", "type": "phone", "label": "Phone"},
]

SIGNUP_RULES: list[dict[str, Any]] = [
    {
        "id": "rule_us_state",
        "name": "State for US residents",
        "conditions": [{"fieldId": "country", "operator": "equals", "value": "US"}],
        "actions": [
            {"kind": "show_field", "targetFieldId": "state"},
            {"kind": "require_field", "targetFieldId": "state"},
        ],
        "priority": 0,
    },
    {
        "id": "rule_minor",
        "name": "Guardian for minors",
        "conditions": [{"fieldId": "age", "operator": "less_than", "value": 18}],
        "actions": [
            {"kind": "show_field", "targetFieldId": "guardian"},
            {"kind": "require_field", "targetFieldId": "guardian"},
        ],
        "priority": 1,
    },
    {
        "id": "rule_phone",
        "name": "Phone when preferred",
        "conditions": [{"fieldId": "contact", "operator": "equals", "value": "phone"}],
        "actions": [{"kind": "require_field", "targetFieldId": "phone"}],
        "priority": 2,
    },
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep FORMLOGIC_* variables from the developer's shell out of tests."""
    for key in list(os.environ):
        if key.startswith("FORMLOGIC_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def _reset_cli_state() -> Generator[None]:
    """Undo what AppContext sets up for the process.

    ``-v`` enables telemetry for the rest of the thread, and the log
    handler points at the CliRunner stream that closes after invoke.
    """
    disable_telemetry()
    yield
    disable_telemetry()
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() == "formlogic":
            root.removeHandler(handler)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def fields() -> list[FieldDefinition]:
    return [FieldDefinition.model_validate(f) for f in SIGNUP_FIELDS]


@pytest.fixture
def store(fields: list[FieldDefinition]) -> FormStore:
    """In-memory store with the sign-up fields and no rules."""
    return FormStore(fields)


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Temporary project with fields.json and rules.json for the sign-up form."""
    (tmp_path / "fields.json").write_text(json.dumps(SIGNUP_FIELDS), encoding="utf-8")
    (tmp_path / "rules.json").write_text(json.dumps(SIGNUP_RULES), encoding="utf-8")
    return tmp_path


@pytest.fixture
def _isolated_project(project_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to the temp project so the CLI picks up its documents.

    Use via ``@pytest.mark.usefixtures("_isolated_project")`` on command
    test classes.
    """
    monkeypatch.chdir(project_root)


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def cond(field_id: str, operator: str, value: Any = None) -> dict[str, Any]:
    """Wire-format condition."""
    data: dict[str, Any] = {"fieldId": field_id, "operator": operator}
    if value is not None:
        data["value"] = value
    return data


def act(kind: str, target: str, value: Any = None) -> dict[str, Any]:
    """Wire-format action."""
    data: dict[str, Any] = {"kind": kind, "targetFieldId": target}
    if value is not None:
        data["value"] = value
    return data


def make_rule(
    rule_id: str,
    conditions: Sequence[dict[str, Any]] = (),
    actions: Sequence[dict[str, Any]] = (),
    **extra: Any,
) -> Rule:
    """Build a Rule from wire-format parts."""
    return Rule.model_validate(
        {
            "id": rule_id,
            "name": extra.pop("name", rule_id),
            "conditions": list(conditions),
            "actions": list(actions),
            **extra,
        }
    )


def field_defs(*ids: str, **types: str) -> list[FieldDefinition]:
    """Text fields named *ids*; pass ``A="select"`` to set a type."""
    return [FieldDefinition(id=fid, type=types.get(fid, "text")) for fid in ids]
