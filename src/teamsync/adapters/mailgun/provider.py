"""Mailgun provider: one or more routes per mailing list."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from teamsync.domain.errors import MalformedResponseError, RejectedActionError
from teamsync.domain.projections import decrypted_mailing_lists
from teamsync.domain.reconciliation import ActionKind, EntityState, EntityTypeSpec

from .routes import Route, forwarded_address, partition, recipient_pattern

if TYPE_CHECKING:
    from collections.abc import Mapping

    from teamsync.domain.expansion import ExpandedModel
    from teamsync.domain.ports import ProviderAdapter
    from teamsync.domain.reconciliation import Action, EntityKey

    from .client import MailgunClient
    from .schema import RoutePayload

log = getLogger(__name__)

DESCRIPTION = "managed by an automatic script on github"

ROUTE = EntityTypeSpec(name="route", tracked_fields=("members",))


@dataclass(slots=True)
class MailgunProvider:
    client: MailgunClient
    encryption_key: str
    name: str = "mailgun"
    entity_types: tuple[EntityTypeSpec, ...] = (ROUTE,)

    def desired_state(
        self,
        model: ExpandedModel,
        entity_type: EntityTypeSpec,
    ) -> Mapping[EntityKey, EntityState]:
        _require_route(entity_type)
        routes = partition(decrypted_mailing_lists(model, self.encryption_key))
        return {
            (route.pattern, route.priority): EntityState({"members": frozenset(route.members)})
            for route in routes
        }

    def fetch_observed(self, entity_type: EntityTypeSpec) -> Mapping[EntityKey, EntityState]:
        _require_route(entity_type)
        observed: dict[EntityKey, EntityState] = {}
        for route in self.client.list_routes():
            if route.description != DESCRIPTION:
                continue
            pattern = recipient_pattern(route.expression)
            if pattern is None:
                raise MalformedResponseError(
                    f"mailgun: managed route {route.id} has an unexpected expression "
                    f"{route.expression!r}"
                )
            observed[(pattern, route.priority)] = EntityState(
                {"members": _members(route)}, handle=route.id
            )
        return observed

    def apply(self, action: Action) -> None:
        if action.kind is ActionKind.DELETE:
            self.client.delete_route(_route_id(action))
            return
        route = Route(
            pattern=str(action.key[0]),
            priority=int(action.key[1]),
            members=tuple(sorted(_as_members(action))),
        )
        if action.kind is ActionKind.CREATE:
            self.client.create_route(
                priority=route.priority,
                description=DESCRIPTION,
                expression=route.expression,
                actions=route.actions,
            )
        else:
            self.client.update_route(
                _route_id(action), priority=route.priority, actions=route.actions
            )


def _require_route(entity_type: EntityTypeSpec) -> None:
    if entity_type.name != ROUTE.name:
        raise ValueError(f"unknown entity type {entity_type.name!r}")


def _members(route: RoutePayload) -> frozenset[str]:
    members: set[str] = set()
    for action in route.actions:
        address = forwarded_address(action)
        if address is None:
            log.warning(f"Ignoring unexpected action {action!r} on Mailgun route {route.id}")
            continue
        members.add(address)
    return frozenset(members)


def _as_members(action: Action) -> frozenset[str]:
    members = action.fields.get("members")
    if not isinstance(members, frozenset):
        raise RejectedActionError(f"mailgun: {action.describe()} carries no member set")
    return members


def _route_id(action: Action) -> str:
    if not isinstance(action.handle, str):
        raise RejectedActionError(f"mailgun: {action.describe()} has no route id")
    return action.handle


if TYPE_CHECKING:
    _provider_check: type[ProviderAdapter] = MailgunProvider
