"""Port implemented by every external system kept in sync."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from teamsync.domain.expansion import ExpandedModel
    from teamsync.domain.reconciliation.contracts import (
        Action,
        EntityKey,
        EntityState,
        EntityTypeSpec,
    )


@runtime_checkable
class ProviderAdapter(Protocol):
    """Fetch and apply contract the reconciliation engine relies on.

    ``entity_types`` is ordered containers first and carries the deletion
    policy of each type. ``fetch_observed`` and ``apply`` raise
    ``ProviderError`` subclasses; nothing transport-specific leaks out.
    """

    @property
    def name(self) -> str: ...

    @property
    def entity_types(self) -> tuple[EntityTypeSpec, ...]: ...

    def desired_state(
        self,
        model: ExpandedModel,
        entity_type: EntityTypeSpec,
    ) -> Mapping[EntityKey, EntityState]: ...

    def fetch_observed(self, entity_type: EntityTypeSpec) -> Mapping[EntityKey, EntityState]: ...

    def apply(self, action: Action) -> None: ...


__all__ = ["ProviderAdapter"]
