"""Zulip provider: user groups, created and updated but never deleted."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from teamsync.domain.errors import RejectedActionError
from teamsync.domain.reconciliation import ActionKind, EntityState, EntityTypeSpec

if TYPE_CHECKING:
    from collections.abc import Mapping

    from teamsync.domain.expansion import ExpandedModel
    from teamsync.domain.ports import ProviderAdapter
    from teamsync.domain.reconciliation import Action, EntityKey

    from .client import ZulipClient

USER_GROUP = EntityTypeSpec(
    name="user-group",
    tracked_fields=("description", "members"),
    allow_delete=False,
)


def group_description(team: str) -> str:
    return f"The {team} team"


@dataclass(slots=True)
class ZulipProvider:
    client: ZulipClient
    name: str = "zulip"
    entity_types: tuple[EntityTypeSpec, ...] = (USER_GROUP,)

    def desired_state(
        self,
        model: ExpandedModel,
        entity_type: EntityTypeSpec,
    ) -> Mapping[EntityKey, EntityState]:
        _require_user_group(entity_type)
        return {
            (group.name,): EntityState(
                {"description": group_description(group.team), "members": group.chat_ids}
            )
            for group in model.chat_groups()
        }

    def fetch_observed(self, entity_type: EntityTypeSpec) -> Mapping[EntityKey, EntityState]:
        _require_user_group(entity_type)
        return {
            (group.name,): EntityState(
                {"description": group.description, "members": frozenset(group.members)},
                handle=group.id,
            )
            for group in self.client.list_user_groups()
            if not group.is_system_group
        }

    def apply(self, action: Action) -> None:
        name = str(action.key[0])
        if action.kind is ActionKind.CREATE:
            self.client.create_user_group(
                name,
                description=str(action.fields["description"]),
                members=_ids(action.fields.get("members")),
            )
            return
        if action.kind is ActionKind.DELETE:
            raise RejectedActionError(f"zulip: user groups are never deleted ({name})")

        if not isinstance(action.handle, int):
            raise RejectedActionError(f"zulip: {action.describe()} has no group id")
        if "description" in action.changes:
            self.client.update_description(
                action.handle, name=name, description=str(action.changes["description"].after)
            )
        if "members" in action.changes:
            change = action.changes["members"]
            before, after = _ids(change.before), _ids(change.after)
            self.client.update_members(action.handle, add=after - before, remove=before - after)


def _require_user_group(entity_type: EntityTypeSpec) -> None:
    if entity_type.name != USER_GROUP.name:
        raise ValueError(f"unknown entity type {entity_type.name!r}")


def _ids(value: object) -> frozenset[int]:
    if value is None:
        return frozenset()
    if not isinstance(value, frozenset):
        raise RejectedActionError(f"zulip: expected a set of user ids, got {value!r}")
    return frozenset(int(item) for item in value)


if TYPE_CHECKING:
    _provider_check: type[ProviderAdapter] = ZulipProvider
