"""RuleService — add, edit, toggle, remove, import and export rules.

Pipeline for every mutation: BUILD → VALIDATE → PERSIST → COMMIT → RESPOND

Build, validate and persist happen inside ``FormStore.commit`` so that defaults
derived from the current rule set (the priority of a new rule) and the
check that the rule still exists are computed against the same snapshot
that is replaced. A rejected rule or a failed write aborts the commit;
the store never holds a rule that failed validation or was not saved.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import structlog

from formlogic.domain.ids import generate_rule_id
from formlogic.domain.models import FieldDefinition, Rule, RuleSet
from formlogic.domain.validation import ValidationResult, validate_rule_data
from formlogic.infrastructure.filesystem import DocumentError, parse_document, render_document
from formlogic.services.base import BaseService
from formlogic.services.result import ServiceResult
from formlogic.services.telemetry import trace_span, traced

log = structlog.get_logger(__name__)


class _Rejected(Exception):
    """Internal: aborts a commit with a ready-made failure result."""

    def __init__(self, result: ServiceResult) -> None:
        super().__init__(result.error.message if result.error else result.op)
        self.result = result


def _validation_failure(op: str, vr: ValidationResult, **detail: Any) -> ServiceResult:
    return ServiceResult.failure(
        op,
        "VALIDATION_FAILED",
        "; ".join(vr.errors),
        detail={"errors": vr.errors, **detail},
        warnings=vr.warnings,
    )


def _not_found(op: str, rule_id: str) -> ServiceResult:
    return ServiceResult.failure(op, "NOT_FOUND", f"No rule found with ID: {rule_id}")


def _persist_failed(op: str, exc: DocumentError) -> ServiceResult:
    return ServiceResult.failure(op, "PERSIST_FAILED", f"Rules were not saved: {exc}")


def _rule_label(raw: Any, index: int) -> str:
    if isinstance(raw, Mapping):
        name = raw.get("name") or raw.get("id")
        if name:
            return str(name)
    return f"#{index + 1}"


class RuleService(BaseService):
    """Manages the rule set of one form."""

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @traced
    def add_rule(self, partial: Mapping[str, Any]) -> ServiceResult:
        """Create a rule from *partial* (wire format, without ``id``).

        The rule gets a fresh ID, and ``priority`` defaults to the current
        rule count, i.e. it is applied after every existing rule.
        """
        op = "add_rule"
        fields = self._store.fields
        created: list[Rule] = []
        warnings: list[str] = []

        def build(rules: RuleSet) -> RuleSet:
            raw = {k: v for k, v in partial.items() if k != "id"}
            raw["id"] = generate_rule_id()
            raw.setdefault("priority", len(rules))
            rule, vr = validate_rule_data(raw, fields)
            if rule is None or not vr.valid:
                raise _Rejected(_validation_failure(op, vr))
            warnings.extend(vr.warnings)
            created.append(rule)
            return rules.add(rule)

        try:
            self._store.commit(build, persist=True)
        except _Rejected as exc:
            return exc.result
        except DocumentError as exc:
            return _persist_failed(op, exc)

        rule = created[0]
        path = self._store.rules_path
        log.info("rule.added", rule_id=rule.id, priority=rule.priority)
        return ServiceResult(
            ok=True,
            op=op,
            data={"rule": rule.to_wire(), "path": str(path) if path else None},
            warnings=warnings,
        )

    @traced
    def update_rule(self, rule_id: str, patch: Mapping[str, Any]) -> ServiceResult:
        """Merge *patch* into rule *rule_id*. The rule ID itself cannot change."""
        op = "update_rule"
        if "id" in patch and patch["id"] != rule_id:
            return ServiceResult.failure(
                op,
                "IMMUTABLE_ID",
                f"Rule ID cannot be changed ({rule_id} -> {patch['id']})",
            )

        fields = self._store.fields
        updated: list[Rule] = []
        warnings: list[str] = []

        def build(rules: RuleSet) -> RuleSet:
            existing = rules.get(rule_id)
            if existing is None:
                raise _Rejected(_not_found(op, rule_id))
            raw = {**existing.to_wire(), **patch, "id": rule_id}
            rule, vr = validate_rule_data(raw, fields)
            if rule is None or not vr.valid:
                raise _Rejected(_validation_failure(op, vr, rule_id=rule_id))
            warnings.extend(vr.warnings)
            updated.append(rule)
            return rules.replace(rule)

        try:
            self._store.commit(build, persist=True)
        except _Rejected as exc:
            return exc.result
        except DocumentError as exc:
            return _persist_failed(op, exc)

        changed = sorted(k for k in patch if k != "id")
        log.info("rule.updated", rule_id=rule_id, fields_changed=changed)
        return ServiceResult(
            ok=True,
            op=op,
            data={"rule": updated[0].to_wire(), "fields_changed": changed},
            warnings=warnings,
        )

    @traced
    def set_active(self, rule_id: str, active: bool) -> ServiceResult:
        """Enable or disable a rule without touching anything else."""
        op = "set_active"

        def build(rules: RuleSet) -> RuleSet:
            existing = rules.get(rule_id)
            if existing is None:
                raise _Rejected(_not_found(op, rule_id))
            return rules.replace(existing.model_copy(update={"active": active}))

        try:
            self._store.commit(build, persist=True)
        except _Rejected as exc:
            return exc.result
        except DocumentError as exc:
            return _persist_failed(op, exc)

        log.info("rule.toggled", rule_id=rule_id, active=active)
        return ServiceResult(ok=True, op=op, data={"id": rule_id, "active": active})

    @traced
    def remove_rule(self, rule_id: str) -> ServiceResult:
        op = "remove_rule"

        def build(rules: RuleSet) -> RuleSet:
            if rule_id not in rules:
                raise _Rejected(_not_found(op, rule_id))
            return rules.remove(rule_id)

        try:
            remaining = self._store.commit(build, persist=True)
        except _Rejected as exc:
            return exc.result
        except DocumentError as exc:
            return _persist_failed(op, exc)

        log.info("rule.removed", rule_id=rule_id)
        return ServiceResult(ok=True, op=op, data={"id": rule_id, "remaining": len(remaining)})

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_rule(self, rule_id: str) -> ServiceResult:
        op = "get_rule"
        rule = self._store.rules.get(rule_id)
        if rule is None:
            return _not_found(op, rule_id)
        return ServiceResult(ok=True, op=op, data={"rule": rule.to_wire()})

    def list_rules(self, *, active_only: bool = False) -> ServiceResult:
        """Rules in application order (ascending priority, ties by insertion)."""
        rules = self._store.rules
        ordered = rules.ordered_active() if active_only else rules.ordered()
        return ServiceResult(
            ok=True,
            op="list_rules",
            data={"count": len(ordered), "items": [r.to_wire() for r in ordered]},
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_rule(self, raw: Mapping[str, Any]) -> ServiceResult:
        """Check a wire-format rule against the form's fields without saving it."""
        _, vr = validate_rule_data(raw, self._store.fields)
        return ServiceResult(
            ok=True,
            op="validate_rule",
            data={"valid": vr.valid, "errors": vr.errors, "warnings": vr.warnings},
            warnings=vr.warnings,
        )

    @traced
    def validate_all(self, raw_rules: Sequence[Any] | None = None) -> ServiceResult:
        """Validate every rule in *raw_rules* (default: the stored rules).

        Always ``ok``; the report says which rules would be rejected.
        """
        if raw_rules is None:
            raw_rules = self._store.rules.to_wire()
        reports, _ = _check_rules(raw_rules, self._store.fields)
        invalid = [r for r in reports if not r["valid"]]
        return ServiceResult(
            ok=True,
            op="validate_rules",
            data={
                "count": len(reports),
                "valid_count": len(reports) - len(invalid),
                "invalid_count": len(invalid),
                "items": reports,
            },
        )

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------

    @traced
    def load(
        self,
        raw_rules: Sequence[Any],
        *,
        op: str = "load_rules",
        persist: bool = False,
    ) -> ServiceResult:
        """Replace the rule set with *raw_rules*, all or nothing.

        If any rule is invalid nothing is replaced and the error lists
        every failing rule. With *persist* the rules document is rewritten
        too, and a failed write leaves the current rules in place.
        """
        if not isinstance(raw_rules, Sequence) or isinstance(raw_rules, (str, bytes)):
            return ServiceResult.failure(
                op, "INVALID_FORMAT", "Invalid format: expected a list of rules"
            )

        with trace_span("validate") as span:
            reports, rules = _check_rules(raw_rules, self._store.fields)
            if span:
                span.annotate(rules=len(reports))

        failures = [
            f'Rule "{report["name"] or report["id"] or report["label"]}": '
            + ", ".join(report["errors"])
            for report in reports
            if not report["valid"]
        ]
        if failures:
            return ServiceResult.failure(
                op,
                "VALIDATION_FAILED",
                f"{len(failures)} of {len(reports)} rules are invalid",
                detail={"errors": failures},
            )

        new_set = RuleSet(rules=tuple(rules))
        try:
            self._store.commit(lambda _current: new_set, persist=persist)
        except DocumentError as exc:
            return _persist_failed(op, exc)
        warnings = [
            f"Rule {report['id']}: {w}" for report in reports for w in report["warnings"]
        ]
        log.info("rules.loaded", count=len(new_set))
        return ServiceResult(ok=True, op=op, data={"count": len(new_set)}, warnings=warnings)

    def import_rules(self, text: str, *, yaml: bool = False) -> ServiceResult:
        """Import a serialized rule list (JSON, or YAML) and persist it."""
        op = "import_rules"
        try:
            document = parse_document(text, yaml=yaml)
        except DocumentError as exc:
            return ServiceResult.failure(op, "INVALID_FORMAT", str(exc))
        if isinstance(document, Mapping) and "rules" in document:
            document = document["rules"]
        return self.load(document, op=op, persist=True)

    def export_rules(self, *, yaml: bool = False) -> ServiceResult:
        """Serialize the rule set in the stable wire format."""
        rules = self._store.rules
        return ServiceResult(
            ok=True,
            op="export_rules",
            data={"count": len(rules), "document": render_document(rules.to_wire(), yaml=yaml)},
        )


def _check_rules(
    raw_rules: Sequence[Any],
    fields: Sequence[FieldDefinition],
) -> tuple[list[dict[str, Any]], list[Rule]]:
    """Validate each raw rule; also reject duplicate IDs within the batch."""
    reports: list[dict[str, Any]] = []
    accepted: list[Rule] = []
    seen: set[str] = set()
    for index, raw in enumerate(raw_rules):
        if not isinstance(raw, Mapping):
            rule, vr = None, ValidationResult(valid=False, errors=["Rule must be an object"])
        else:
            rule, vr = validate_rule_data(raw, fields)
        errors = list(vr.errors)
        if rule is not None:
            if rule.id in seen:
                errors.append(f"Duplicate rule ID: {rule.id}")
            seen.add(rule.id)
        valid = not errors
        if valid and rule is not None:
            accepted.append(rule)
        fallback = raw if isinstance(raw, Mapping) else {}
        reports.append(
            {
                "id": rule.id if rule else fallback.get("id"),
                "name": rule.name if rule else fallback.get("name"),
                "label": _rule_label(raw, index),
                "valid": valid,
                "errors": errors,
                "warnings": list(vr.warnings),
            }
        )
    return reports, accepted
