"""Rich renderers for ServiceResult, one per operation.

``render_result`` looks the operation up in ``_OP_RENDERERS``; anything
not listed gets the generic key/value renderer. Renderers draw on a
StringIO-backed console from :func:`create_console` and the text is
read back with :func:`get_output`.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.markup import escape
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from formlogic.output.console import create_console, flag_markup, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from formlogic.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Human-readable text for *result*.

    No ANSI codes are emitted unless stdout is a terminal, so CliRunner
    and pipes see plain text.
    """
    console = create_console()
    if result.ok:
        _OP_RENDERERS.get(result.op, _render_generic)(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)
    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """One line per item, or a single status line, for ``--quiet``."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"

    # Rule listings: IDs only
    items = result.data.get("items")
    if items and isinstance(items, list):
        return "\n".join(rule_id for rule_id in map(_extract_id, items) if rule_id)

    # Evaluations: the visible fields, one per line
    states = result.data.get("fields")
    if isinstance(states, dict):
        return "\n".join(fid for fid, state in states.items() if state.get("visible"))

    if result.op == "export_rules":
        return str(result.data.get("document", "")).rstrip("\n")

    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _extract_id(item: Any) -> str:
    rule_id = item.get("id") if isinstance(item, dict) else None
    return "" if rule_id is None else str(rule_id)


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text.assemble(("OK", "fl.ok"), (f"  {result.op}", "fl.op")))


def _field(console: Console, key: str, value: Any) -> None:
    """Print one indented ``key: value`` line; lists and dicts as compact JSON."""
    if key == "id" or key.endswith("_id"):
        style = "fl.id"
    elif key in ("path", "name"):
        style = f"fl.{key}"
    else:
        style = ""
    if isinstance(value, (dict, list)):
        text = json.dumps(value, separators=(",", ":"))
    else:
        text = str(value)
    console.print(Text.assemble((f"  {key}: ", "fl.key"), (text, style)))


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print result.meta, with the telemetry span tree (verbose only)."""
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for key, value in result.meta.items():
        if key == "telemetry":
            tree = Tree(_span_label(value), guide_style="dim")
            _add_spans(tree, value.get("children", []))
            console.print(tree)
        else:
            console.print(f"    {key}: {value}")


def _span_label(span: dict[str, Any]) -> str:
    duration = span.get("duration_ms", 0.0)
    style = "bold red" if duration > 1000 else "yellow" if duration > 100 else "dim"
    label = f"[{style}]{duration:>8.2f}ms[/{style}]  {escape(str(span.get('name', '?')))}"
    annotations = span.get("annotations") or {}
    if annotations:
        label += "  (" + ", ".join(f"{k}={v}" for k, v in annotations.items()) + ")"
    return label


def _add_spans(tree: Tree, spans: list[dict[str, Any]]) -> None:
    for span in spans:
        _add_spans(tree.add(_span_label(span)), span.get("children", []))


def _state_table(states: dict[str, dict[str, Any]]) -> Table:
    """Build a Rich Table of derived field states."""
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Field", style="fl.id", no_wrap=True)
    table.add_column("Visible")
    table.add_column("Required")
    table.add_column("Disabled")
    table.add_column("Override", style="fl.override")

    for field_id, state in states.items():
        override = state.get("valueOverride")
        table.add_row(
            field_id,
            flag_markup(bool(state.get("visible"))),
            flag_markup(bool(state.get("required"))),
            flag_markup(bool(state.get("disabled"))),
            "" if override is None else json.dumps(override),
        )
    return table


def _rule_table(items: list[dict[str, Any]], *, verbose: bool = False) -> Table:
    """Build a Rich Table of rules in application order."""
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="fl.id", no_wrap=True)
    table.add_column("Name", style="fl.name")
    table.add_column("Priority", justify="right")
    table.add_column("Active")
    table.add_column("Conditions", justify="right")
    table.add_column("Actions", justify="right")
    if verbose:
        table.add_column("Description", style="dim")

    for item in items:
        row = [
            str(item.get("id", "")),
            str(item.get("name", "")),
            str(item.get("priority", "")),
            flag_markup(bool(item.get("active"))),
            str(len(item.get("conditions", []))),
            str(len(item.get("actions", []))),
        ]
        if verbose:
            row.append(str(item.get("description", "")))
        table.add_row(*row)
    return table


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    console.print(Text.assemble(("ERROR", "fl.error"), (f"  {result.op}", "fl.op"), f" — {msg}"))

    # Per-rule failures are shown even without --verbose.
    errors = (err.detail or {}).get("errors") if err else None
    if errors:
        for line in errors:
            console.print(f"  [fl.error]error[/fl.error] {escape(str(line))}")

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            if k != "errors":
                console.print(escape(f"    {k}: {v}"))


# ── Evaluation renderers ──────────────────────────────────────────────


def _render_evaluation(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render update_form_data / run_test results as a field-state table."""
    _status_line(console, result)
    d = result.data
    _field(console, "passes", d.get("passes", 0))
    if not d.get("converged", True):
        console.print("  [fl.warning]not converged[/fl.warning]: pass limit reached")

    states = d.get("fields", {})
    if states:
        console.print(_state_table(states))

    matched = d.get("matched_rules")
    if matched is not None:
        _field(console, "matched_rules", ", ".join(matched) if matched else "(none)")

    for conflict in d.get("conflicts", []):
        console.print(
            f"  [fl.warning]conflict[/fl.warning] {conflict['field_id']}.{conflict['attribute']}: "
            f"{conflict['winning_rule_id']} overrides {conflict['overridden_rule_id']}"
        )

    if verbose:
        for issue in d.get("issues", []):
            message = escape(issue["message"])
            console.print(f"  [fl.warning]{issue['code']}[/fl.warning]: {message}")
        _render_meta(console, result)


# ── Rule renderers ────────────────────────────────────────────────────


def _render_rule_list(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    if not items:
        console.print("No rules.")
        return
    console.print(_rule_table(items, verbose=verbose))
    console.print(f"\n{result.data.get('count', len(items))} rules")


def _render_rule(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render a single rule with its conditions and actions."""
    rule = result.data.get("rule", {})
    _status_line(console, result)
    for key in ("id", "name", "description", "priority", "active"):
        if key in rule and rule[key] != "":
            _field(console, key, rule[key])

    console.print(Text("  conditions:", style="fl.key"))
    for cond in rule.get("conditions", []):
        value = cond.get("value")
        suffix = "" if value is None else f" {json.dumps(value)}"
        console.print(escape(f"    {cond.get('fieldId')} {cond.get('operator')}{suffix}"))

    console.print(Text("  actions:", style="fl.key"))
    for action in rule.get("actions", []):
        value = action.get("value")
        suffix = "" if value is None else f" = {json.dumps(value)}"
        console.print(escape(f"    {action.get('kind')} {action.get('targetFieldId')}{suffix}"))

    if verbose:
        _render_meta(console, result)


def _render_mutation(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render add/update/remove/enable/disable results."""
    _status_line(console, result)
    d = result.data
    rule = d.get("rule")
    if isinstance(rule, dict):
        for key in ("id", "name", "priority", "active"):
            if key in rule:
                _field(console, key, rule[key])
    for key in ("id", "active", "remaining", "path"):
        if key in d and d[key] is not None:
            _field(console, key, d[key])
    if d.get("fields_changed"):
        _field(console, "fields_changed", ", ".join(d["fields_changed"]))
    if verbose:
        _render_meta(console, result)


def _render_validation(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render validate_rules results, one block per rule with findings."""
    d = result.data
    items = d.get("items", [])
    for report in items:
        label = report.get("name") or report.get("id") or report.get("label")
        errors = report.get("errors", [])
        warnings = report.get("warnings", [])
        if not errors and not warnings and not verbose:
            continue
        status = "[fl.ok]valid[/fl.ok]" if report.get("valid") else "[fl.error]invalid[/fl.error]"
        console.print(f"[bold]{escape(str(label))}[/bold]  {status}")
        for line in errors:
            console.print(f"  [fl.error]error[/fl.error]: {escape(line)}")
        for line in warnings:
            console.print(f"  [fl.warning]warning[/fl.warning]: {escape(line)}")

    invalid = d.get("invalid_count", 0)
    if invalid == 0:
        console.print(f"[fl.ok]OK[/fl.ok]  {d.get('count', len(items))} rules valid")
    else:
        console.print(f"\n{d.get('valid_count', 0)} valid, {invalid} invalid")


def _render_single_validation(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    d = result.data
    if d.get("valid"):
        console.print("[fl.ok]OK[/fl.ok]  rule is valid")
    else:
        console.print("[fl.error]INVALID[/fl.error]  rule is invalid")
    for line in d.get("errors", []):
        console.print(f"  [fl.error]error[/fl.error]: {escape(line)}")


def _render_load(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _field(console, "count", result.data.get("count", 0))
    if verbose:
        _render_meta(console, result)


def _render_export(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Print the serialized document as-is so it can be redirected to a file."""
    console.print(Text(str(result.data.get("document", "")).rstrip("\n")), soft_wrap=True)


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    # Evaluation
    "update_form_data": _render_evaluation,
    "run_test": _render_evaluation,
    # Rules
    "list_rules": _render_rule_list,
    "get_rule": _render_rule,
    "add_rule": _render_mutation,
    "update_rule": _render_mutation,
    "remove_rule": _render_mutation,
    "set_active": _render_mutation,
    # Validation
    "validate_rules": _render_validation,
    "validate_rule": _render_single_validation,
    # Import / export
    "load_rules": _render_load,
    "import_rules": _render_load,
    "export_rules": _render_export,
}
