"""BaseService — abstract foundation for all formlogic services.

Every service receives a :class:`FormStore` at construction time. Reads
take one snapshot per operation; writes go through
``self._store.commit()`` so the store stays copy-on-write.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from formlogic.infrastructure.store import FormStore


class BaseService:
    """Abstract base for service-layer classes.

    Usage::

        class RuleService(BaseService):
            def remove_rule(self, rule_id: str) -> ServiceResult:
                self._store.commit(lambda rules: rules.remove(rule_id))
                ...
    """

    def __init__(self, store: FormStore) -> None:
        self._store = store

    @property
    def store(self) -> FormStore:
        return self._store
