"""In-memory provider used to exercise the reconciliation engine."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from teamsync.domain.reconciliation import EntityState, EntityTypeSpec

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from teamsync.domain.expansion import ExpandedModel
    from teamsync.domain.reconciliation import Action, EntityKey

GROUP = EntityTypeSpec(name="group", tracked_fields=("description",))
MEMBERSHIP = EntityTypeSpec(name="membership", tracked_fields=("role",), parent="group")


def states(entries: Mapping[EntityKey, Mapping[str, object]]) -> dict[EntityKey, EntityState]:
    return {key: EntityState(dict(fields), handle=key[-1]) for key, fields in entries.items()}


@dataclass
class FakeProvider:
    """Provider whose state lives in dictionaries.

    ``failures`` maps an action description to the errors raised by
    successive ``apply`` calls; ``on_apply`` runs after every applied action.
    """

    name: str = "fake"
    entity_types: tuple[EntityTypeSpec, ...] = (GROUP, MEMBERSHIP)
    desired: dict[str, dict[EntityKey, EntityState]] = field(default_factory=dict)
    observed: dict[str, dict[EntityKey, EntityState]] = field(default_factory=dict)
    failures: dict[str, list[Exception]] = field(default_factory=dict)
    fetch_failures: list[Exception] = field(default_factory=list)
    on_apply: Callable[[Action], None] | None = None
    applied: list[Action] = field(default_factory=list)
    fetches: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def desired_state(
        self,
        model: ExpandedModel,  # noqa: ARG002
        entity_type: EntityTypeSpec,
    ) -> Mapping[EntityKey, EntityState]:
        return self.desired.get(entity_type.name, {})

    def fetch_observed(self, entity_type: EntityTypeSpec) -> Mapping[EntityKey, EntityState]:
        with self._lock:
            self.fetches += 1
            if self.fetch_failures:
                raise self.fetch_failures.pop(0)
        return self.observed.get(entity_type.name, {})

    def apply(self, action: Action) -> None:
        pending = self.failures.get(action.describe())
        if pending:
            raise pending.pop(0)
        with self._lock:
            self.applied.append(action)
        if self.on_apply is not None:
            self.on_apply(action)
