"""Tests for the rules CLI command group."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from formlogic.cli import cli

NEW_RULE = {
    "name": "Email for newsletter",
    "conditions": [{"fieldId": "newsletter", "operator": "is_checked"}],
    "actions": [{"kind": "require_field", "targetFieldId": "email"}],
}


def _saved(project_root: Path) -> list[dict[str, Any]]:
    return json.loads((project_root / "rules.json").read_text(encoding="utf-8"))


@pytest.mark.usefixtures("_isolated_project")
class TestListAndShow:
    def test_list_json(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "rules", "list"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)["data"]
        assert data["count"] == 3
        assert data["items"][0]["id"] == "rule_us_state"

    def test_list_human(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["rules", "list"])
        assert result.exit_code == 0
        assert "Guardian for minors" in result.stdout
        assert "3 rules" in result.stdout

    def test_show(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["rules", "show", "rule_minor"])
        assert result.exit_code == 0
        assert "age less_than 18" in result.stdout
        assert "show_field guardian" in result.stdout

    def test_show_missing(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "rules", "show", "nope"])
        assert result.exit_code == 1
        assert result.stdout == ""
        assert json.loads(result.stderr)["error"]["code"] == "NOT_FOUND"


@pytest.mark.usefixtures("_isolated_project")
class TestMutations:
    def test_add_inline(self, cli_runner: CliRunner, project_root: Path) -> None:
        result = cli_runner.invoke(cli, ["--json", "rules", "add", json.dumps(NEW_RULE)])
        assert result.exit_code == 0, result.output
        rule = json.loads(result.stdout)["data"]["rule"]
        assert rule["id"].startswith("rule_")
        assert rule["priority"] == 3
        saved = _saved(project_root)
        assert len(saved) == 4
        assert saved[-1]["id"] == rule["id"]

    def test_add_from_yaml_file(self, cli_runner: CliRunner, project_root: Path) -> None:
        (project_root / "new.yaml").write_text(
            "name: Phone disabled by default\n"
            "conditions:\n"
            "  - fieldId: contact\n"
            "    operator: is_empty\n"
            "actions:\n"
            "  - kind: disable_field\n"
            "    targetFieldId: phone\n",
            encoding="utf-8",
        )
        result = cli_runner.invoke(cli, ["rules", "add", "@new.yaml"])
        assert result.exit_code == 0, result.output
        assert len(_saved(project_root)) == 4

    def test_add_invalid(self, cli_runner: CliRunner, project_root: Path) -> None:
        bad = {**NEW_RULE, "actions": [{"kind": "require_field", "targetFieldId": "zzz"}]}
        result = cli_runner.invoke(cli, ["--json", "rules", "add", json.dumps(bad)])
        assert result.exit_code == 1
        payload = json.loads(result.stderr)
        assert payload["error"]["code"] == "VALIDATION_FAILED"
        assert "zzz" in payload["error"]["message"]
        assert len(_saved(project_root)) == 3

    def test_add_not_an_object(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["rules", "add", "[1, 2]"])
        assert result.exit_code == 2

    def test_add_warnings_on_stderr(self, cli_runner: CliRunner) -> None:
        rule = {**NEW_RULE, "conditions": []}
        result = cli_runner.invoke(cli, ["rules", "add", json.dumps(rule)])
        assert result.exit_code == 0
        assert "WARNING: Rule has no conditions" in result.stderr

    def test_update(self, cli_runner: CliRunner, project_root: Path) -> None:
        result = cli_runner.invoke(cli, ["rules", "update", "rule_phone", '{"priority": -1}'])
        assert result.exit_code == 0, result.output
        assert "fields_changed: priority" in result.stdout
        saved = {r["id"]: r for r in _saved(project_root)}
        assert saved["rule_phone"]["priority"] == -1

    def test_update_id_rejected(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["--json", "rules", "update", "rule_phone", '{"id": "rule_x"}']
        )
        assert result.exit_code == 1
        assert json.loads(result.stderr)["error"]["code"] == "IMMUTABLE_ID"

    def test_disable_then_enable(self, cli_runner: CliRunner, project_root: Path) -> None:
        assert cli_runner.invoke(cli, ["rules", "disable", "rule_minor"]).exit_code == 0
        assert {r["id"]: r for r in _saved(project_root)}["rule_minor"]["active"] is False

        result = cli_runner.invoke(cli, ["--json", "evaluate", "--set", "age=10"])
        assert json.loads(result.stdout)["data"]["fields"]["guardian"]["visible"] is True

        assert cli_runner.invoke(cli, ["rules", "enable", "rule_minor"]).exit_code == 0
        assert {r["id"]: r for r in _saved(project_root)}["rule_minor"]["active"] is True

    def test_remove(self, cli_runner: CliRunner, project_root: Path) -> None:
        result = cli_runner.invoke(cli, ["rules", "remove", "rule_phone"])
        assert result.exit_code == 0
        assert "remaining: 2" in result.stdout
        assert [r["id"] for r in _saved(project_root)] == ["rule_us_state", "rule_minor"]

    def test_remove_missing(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["rules", "remove", "nope"])
        assert result.exit_code == 1
        assert "No rule found with ID: nope" in result.stderr


@pytest.mark.usefixtures("_isolated_project")
class TestCheck:
    def test_check_valid(self, cli_runner: CliRunner) -> None:
        rule = {"id": "draft", **NEW_RULE}
        result = cli_runner.invoke(cli, ["rules", "check", json.dumps(rule)])
        assert result.exit_code == 0
        assert "rule is valid" in result.stdout

    def test_check_invalid(self, cli_runner: CliRunner, project_root: Path) -> None:
        rule = {"id": "draft", **NEW_RULE, "conditions": [{"fieldId": "zzz", "operator": "is_empty"}]}
        result = cli_runner.invoke(cli, ["rules", "check", json.dumps(rule)])
        assert result.exit_code == 0
        assert "unknown field: zzz" in result.stdout
        assert len(_saved(project_root)) == 3


@pytest.mark.usefixtures("_isolated_project")
class TestImportExport:
    def test_export_json(self, cli_runner: CliRunner, project_root: Path) -> None:
        result = cli_runner.invoke(cli, ["rules", "export"])
        assert result.exit_code == 0
        exported = json.loads(result.stdout)
        assert [r["id"] for r in exported] == [r["id"] for r in _saved(project_root)]

    def test_export_import_yaml(self, cli_runner: CliRunner, project_root: Path) -> None:
        exported = cli_runner.invoke(cli, ["rules", "export", "--yaml"]).stdout
        (project_root / "backup.yaml").write_text(exported, encoding="utf-8")
        cli_runner.invoke(cli, ["rules", "remove", "rule_phone"])

        result = cli_runner.invoke(cli, ["--json", "rules", "import", "backup.yaml"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["data"]["count"] == 3
        assert len(_saved(project_root)) == 3

    def test_import_all_or_nothing(self, cli_runner: CliRunner, project_root: Path) -> None:
        rules = _saved(project_root)
        rules[2]["conditions"][0]["operator"] = "resembles"
        (project_root / "bad.json").write_text(json.dumps(rules[1:]), encoding="utf-8")

        result = cli_runner.invoke(cli, ["rules", "import", "bad.json"])
        assert result.exit_code == 1
        assert 'Rule "Phone when preferred"' in result.stderr
        assert len(_saved(project_root)) == 3

    def test_import_repairs_broken_document(
        self, cli_runner: CliRunner, project_root: Path
    ) -> None:
        good = _saved(project_root)
        (project_root / "good.json").write_text(json.dumps(good), encoding="utf-8")
        (project_root / "rules.json").write_text('[{"id": "x", "actions": 5}]', encoding="utf-8")

        assert cli_runner.invoke(cli, ["rules", "list"]).exit_code == 1
        result = cli_runner.invoke(cli, ["rules", "import", "good.json"])
        assert result.exit_code == 0, result.output
        assert cli_runner.invoke(cli, ["rules", "list"]).exit_code == 0
