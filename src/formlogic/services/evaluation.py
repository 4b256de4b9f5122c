"""EvaluationService — derived field state for the current form data.

``update_form_data`` is the renderer-facing call, made on every field
change. ``run_test`` is the diagnostic view for rule authors: the same
map plus which rules matched, which writes were overridden, and the
structured warnings.

Each call reads one store snapshot at the start and evaluates only
against it, so rule edits committed meanwhile never leak into a call
already in progress.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from formlogic.domain.engine import Resolution, resolve
from formlogic.domain.models import FieldDefinition
from formlogic.services.base import BaseService
from formlogic.services.result import ServiceResult
from formlogic.services.telemetry import trace_span, traced

log = structlog.get_logger(__name__)


class EvaluationService(BaseService):
    """Runs the resolution engine against the store's current snapshot."""

    def _resolve(
        self,
        data: Mapping[str, Any],
        fields: Iterable[FieldDefinition] | None,
    ) -> Resolution:
        snapshot = self._store.snapshot()
        engine = self._store.engine
        field_defs = list(fields) if fields is not None else list(snapshot.fields)

        with trace_span("resolve") as span:
            resolution = resolve(
                field_defs,
                snapshot.rules,
                data,
                max_passes=engine.max_passes,
                case_sensitive=engine.case_sensitive,
            )
            if span:
                span.annotate(
                    passes=resolution.passes, matched=len(resolution.matched_rules)
                )

        for warning in resolution.warnings:
            log.warning(
                "evaluation.warning",
                code=str(warning.code),
                rule_id=warning.rule_id,
                field_id=warning.field_id,
                detail=warning.message,
            )
        return resolution

    @traced
    def update_form_data(
        self,
        data: Mapping[str, Any] | None = None,
        *,
        fields: Iterable[FieldDefinition] | None = None,
    ) -> ServiceResult:
        """Evaluate the rules for *data*.

        Args:
            data: Current field values keyed by field ID.
            fields: Field definitions for this call; defaults to the store's.

        ``data["fields"]`` of the result maps every field ID to its
        ``{visible, required, disabled, valueOverride?}`` state.
        """
        op = "update_form_data"
        if data is not None and not isinstance(data, Mapping):
            return ServiceResult.failure(
                op, "INVALID_FORMAT", "Form data must be an object of field values"
            )
        resolution = self._resolve(data or {}, fields)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "fields": resolution.to_wire(),
                "passes": resolution.passes,
                "converged": resolution.converged,
            },
            warnings=[w.message for w in resolution.warnings],
        )

    @traced
    def run_test(
        self,
        data: Mapping[str, Any] | None = None,
        *,
        fields: Iterable[FieldDefinition] | None = None,
    ) -> ServiceResult:
        """Evaluate *data* and report the full resolution for rule authors."""
        op = "run_test"
        if data is not None and not isinstance(data, Mapping):
            return ServiceResult.failure(
                op, "INVALID_FORMAT", "Form data must be an object of field values"
            )
        resolution = self._resolve(data or {}, fields)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "fields": resolution.to_wire(),
                "passes": resolution.passes,
                "converged": resolution.converged,
                "matched_rules": list(resolution.matched_rules),
                "conflicts": [c.to_dict() for c in resolution.conflicts],
                "issues": [w.to_dict() for w in resolution.warnings],
            },
            warnings=[w.message for w in resolution.warnings],
        )
