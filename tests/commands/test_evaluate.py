"""Tests for the evaluate CLI command."""

from __future__ import annotations

import json
from pathlib import Path

import click
import pytest
from click.testing import CliRunner

from formlogic.cli import cli
from formlogic.commands.evaluate import parse_assignment


class TestParseAssignment:
    def test_json_values(self) -> None:
        assert parse_assignment("age=20") == ("age", 20)
        assert parse_assignment("ok=true") == ("ok", True)
        assert parse_assignment('tags=["a","b"]') == ("tags", ["a", "b"])

    def test_text_values(self) -> None:
        assert parse_assignment("name=Ada") == ("name", "Ada")
        assert parse_assignment("expr=a=b") == ("expr", "a=b")
        assert parse_assignment("blank=") == ("blank", "")

    def test_missing_separator(self) -> None:
        with pytest.raises(click.BadParameter):
            parse_assignment("country")


@pytest.mark.usefixtures("_isolated_project")
class TestEvaluateCommand:
    def test_json_output(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "evaluate", "--set", "country=US"])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["op"] == "run_test"
        assert payload["data"]["fields"]["state"]["visible"] is True
        assert payload["data"]["matched_rules"] == ["rule_us_state"]

    def test_human_output(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["evaluate", "--set", "age=15"])
        assert result.exit_code == 0, result.output
        assert "run_test" in result.stdout
        assert "guardian" in result.stdout
        assert "matched_rules: rule_minor" in result.stdout

    def test_data_file_with_override(self, cli_runner: CliRunner, project_root: Path) -> None:
        (project_root / "answers.yaml").write_text("country: US\nage: 15\n", encoding="utf-8")
        result = cli_runner.invoke(
            cli, ["--json", "evaluate", "--data", "answers.yaml", "--set", "age=40"]
        )
        assert result.exit_code == 0, result.output
        fields = json.loads(result.stdout)["data"]["fields"]
        assert fields["state"]["required"] is True
        assert fields["guardian"]["visible"] is False

    def test_brief(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "evaluate", "--brief"])
        payload = json.loads(result.stdout)
        assert payload["op"] == "update_form_data"
        assert "matched_rules" not in payload["data"]

    def test_quiet_lists_visible_fields(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["-q", "evaluate", "--set", "country=US"])
        assert result.exit_code == 0
        visible = result.stdout.split()
        assert "state" in visible
        assert "guardian" not in visible

    def test_bad_assignment(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["evaluate", "--set", "country"])
        assert result.exit_code == 2

    def test_missing_data_file(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["evaluate", "--data", "nope.json"])
        assert result.exit_code == 1
        assert "File not found" in result.stderr

    def test_invalid_rules_document(self, cli_runner: CliRunner, project_root: Path) -> None:
        rules = json.loads((project_root / "rules.json").read_text(encoding="utf-8"))
        rules[0]["conditions"][0]["fieldId"] = "zzz"
        (project_root / "rules.json").write_text(json.dumps(rules), encoding="utf-8")
        result = cli_runner.invoke(cli, ["evaluate"])
        assert result.exit_code == 1
        assert "zzz" in result.stderr

    def test_verbose_shows_telemetry(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["-v", "evaluate"])
        assert result.exit_code == 0, result.output
        assert "EvaluationService.run_test" in result.stdout
        assert "resolve" in result.stdout
