"""FormStore — copy-on-write holder for one form's fields and rules.

The store is the single dependency injected into every service. It holds
one immutable :class:`FormSnapshot` (field definitions + ``RuleSet``)
behind a single reference:

- **Readers** call :meth:`FormStore.snapshot` once and evaluate against
  that object. No lock; later commits never alter it.
- **Writers** go through :meth:`FormStore.commit`, which computes a new
  ``RuleSet`` from the current one under a writer lock and swaps the
  reference. Concurrent edits therefore never lose each other's changes,
  and an evaluation in progress never sees a half-applied edit. A commit
  that saves to disk publishes only after the write succeeded.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from formlogic.config.models import EngineConfig
from formlogic.domain.models import FieldDefinition, Rule, RuleSet
from formlogic.infrastructure.filesystem import load_fields, load_rules_data, save_rules

if TYPE_CHECKING:
    from pathlib import Path

    from formlogic.config.settings import FormLogicSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormSnapshot:
    """Immutable view of a form's fields and rules at one instant."""

    fields: tuple[FieldDefinition, ...]
    rules: RuleSet

    @property
    def field_ids(self) -> frozenset[str]:
        return frozenset(f.id for f in self.fields)


class FormStore:
    """Holds the current snapshot; swaps it atomically on commit."""

    def __init__(
        self,
        fields: Iterable[FieldDefinition],
        rules: RuleSet | Iterable[Rule] | None = None,
        *,
        engine: EngineConfig | None = None,
        rules_path: Path | None = None,
    ) -> None:
        rule_set = rules if isinstance(rules, RuleSet) else RuleSet(rules=tuple(rules or ()))
        self._snapshot = FormSnapshot(fields=tuple(fields), rules=rule_set)
        self._write_lock = threading.Lock()
        self.engine = engine or EngineConfig()
        self.rules_path = rules_path

    @classmethod
    def from_settings(cls, settings: FormLogicSettings) -> tuple[FormStore, list[Any]]:
        """Load fields from disk; return the store and the raw rule documents.

        Rules come back unparsed so the caller can validate them before
        they enter the store (see ``RuleService.load``).

        Raises:
            DocumentError: If the fields or rules document cannot be read.
        """
        fields = load_fields(settings.fields_file)
        raw_rules = load_rules_data(settings.rules_file)
        store = cls(fields, engine=settings.engine, rules_path=settings.rules_file)
        return store, raw_rules

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> FormSnapshot:
        return self._snapshot

    @property
    def rules(self) -> RuleSet:
        return self._snapshot.rules

    @property
    def fields(self) -> tuple[FieldDefinition, ...]:
        return self._snapshot.fields

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def commit(
        self,
        update: Callable[[RuleSet], RuleSet],
        *,
        persist: bool = False,
    ) -> RuleSet:
        """Apply *update* to the current rules and publish the result.

        With *persist*, the new rules are written to ``rules_path`` before
        they are published, so a failed write leaves both the store and
        the file as they were. Exceptions raised by *update* or by the
        write propagate.

        Raises:
            DocumentError: If the rules document cannot be written.
        """
        with self._write_lock:
            current = self._snapshot
            new_rules = update(current.rules)
            if persist and self.rules_path is not None:
                save_rules(self.rules_path, new_rules)
            self._snapshot = replace(current, rules=new_rules)
        logger.debug("Committed rule set (%d rules)", len(new_rules))
        return new_rules
