"""Diff desired against observed state and order the resulting actions.

The plan is a pure function of its inputs: actions are grouped by kind
(creations, updates, deletions), then by entity type, then sorted by key, so
identical inputs render to byte-identical plans.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from .contracts import Action, ActionKind, Advisory, FieldChange, format_key

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence

    from .contracts import ActionId, EntityKey, EntityState, EntityTypeSpec, KeyPart

    type StateByKey = Mapping[EntityKey, EntityState]


def normalize(value: object) -> object:
    """Return a comparable, order-stable form of a tracked field value.

    Sets compare order-insensitively; lists and tuples keep their order;
    mappings compare by sorted items.
    """

    if isinstance(value, (set, frozenset)):
        return tuple(sorted((normalize(item) for item in value), key=_sort_token))
    if isinstance(value, (list, tuple)):
        return tuple(normalize(item) for item in value)
    if isinstance(value, dict):
        return tuple(sorted(((k, normalize(v)) for k, v in value.items()), key=_sort_token))
    return value


def _sort_token(value: object) -> tuple[str, str]:
    if isinstance(value, tuple):
        return ("tuple", json.dumps([_sort_token(item) for item in value]))
    if isinstance(value, int) and not isinstance(value, bool):
        return ("int", f"{value:020d}")
    return (type(value).__name__, str(value))


def _key_order(key: EntityKey) -> tuple[tuple[int, int, str], ...]:
    return tuple(_part_order(part) for part in key)


def _part_order(part: KeyPart) -> tuple[int, int, str]:
    if isinstance(part, int):
        return (0, part, "")
    return (1, 0, part)


def diff_entity_type(
    provider: str,
    spec: EntityTypeSpec,
    desired: StateByKey,
    observed: StateByKey,
) -> tuple[list[Action], list[Advisory]]:
    """Compare one entity type by key and emit the minimal set of actions."""

    actions: list[Action] = []
    advisories: list[Advisory] = []

    for key in sorted(desired.keys() - observed.keys(), key=_key_order):
        state = desired[key]
        actions.append(
            Action(
                provider=provider,
                entity_type=spec.name,
                kind=ActionKind.CREATE,
                key=key,
                fields={name: state.fields.get(name) for name in spec.tracked_fields},
                handle=state.handle,
            )
        )

    for key in sorted(desired.keys() & observed.keys(), key=_key_order):
        wanted, current = desired[key], observed[key]
        changes = {
            name: FieldChange(before=current.fields.get(name), after=wanted.fields.get(name))
            for name in spec.tracked_fields
            if normalize(current.fields.get(name)) != normalize(wanted.fields.get(name))
        }
        if changes:
            actions.append(
                Action(
                    provider=provider,
                    entity_type=spec.name,
                    kind=ActionKind.UPDATE,
                    key=key,
                    fields={name: change.after for name, change in changes.items()},
                    changes=changes,
                    handle=current.handle,
                )
            )

    for key in sorted(observed.keys() - desired.keys(), key=_key_order):
        state = observed[key]
        if not spec.allow_delete or state.protected:
            reason = "it is not managed" if state.protected else "deletion is not permitted"
            advisories.append(
                Advisory(
                    provider=provider,
                    entity_type=spec.name,
                    key=key,
                    message=f"present in the provider but not desired; {reason}",
                )
            )
            continue
        actions.append(
            Action(
                provider=provider,
                entity_type=spec.name,
                kind=ActionKind.DELETE,
                key=key,
                fields=dict(state.fields),
                handle=state.handle,
            )
        )
    return actions, advisories


@dataclass(frozen=True, slots=True, kw_only=True)
class ActionPlan:
    provider: str
    actions: tuple[Action, ...] = ()
    advisories: tuple[Advisory, ...] = ()
    entity_types: tuple[str, ...] = ()

    def __iter__(self) -> Iterator[Action]:
        return iter(self.actions)

    def __len__(self) -> int:
        return len(self.actions)

    @property
    def is_empty(self) -> bool:
        return not self.actions

    def of_kind(self, kind: ActionKind) -> tuple[Action, ...]:
        return tuple(action for action in self.actions if action.kind is kind)

    def render(self) -> str:
        """Human-readable plan, one line per action or advisory."""

        lines = [f"provider {self.provider}: {len(self.actions)} action(s)"]
        for action in self.actions:
            lines.append(f"  {action.describe()}")
            if action.kind is ActionKind.UPDATE:
                lines.extend(
                    f"    {name}: {_render_value(change.before)} -> "
                    f"{_render_value(change.after)}"
                    for name, change in action.changes.items()
                )
            elif action.kind is ActionKind.CREATE:
                lines.extend(
                    f"    {name}: {_render_value(value)}" for name, value in action.fields.items()
                )
        lines.extend(f"  {advisory.describe()}" for advisory in self.advisories)
        return "\n".join(lines)

    def to_dict(self) -> dict[str, object]:
        return {
            "provider": self.provider,
            "actions": [
                {
                    "kind": action.kind.value,
                    "entity_type": action.entity_type,
                    "key": list(action.key),
                    "fields": {name: _jsonable(value) for name, value in action.fields.items()},
                    "changes": {
                        name: {"before": _jsonable(change.before), "after": _jsonable(change.after)}
                        for name, change in action.changes.items()
                    },
                    "depends_on": [
                        {"kind": kind, "entity_type": entity_type, "key": list(key)}
                        for kind, entity_type, key in action.depends_on
                    ],
                }
                for action in self.actions
            ],
            "advisories": [
                {
                    "entity_type": advisory.entity_type,
                    "key": list(advisory.key),
                    "message": advisory.message,
                }
                for advisory in self.advisories
            ],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, sort_keys=True)


def build_plan(
    provider: str,
    specs: Sequence[EntityTypeSpec],
    desired: Mapping[str, StateByKey],
    observed: Mapping[str, StateByKey],
) -> ActionPlan:
    """Diff every entity type of ``provider`` and order the actions.

    Creations and updates follow the declared entity-type order (containers
    first); deletions follow the reverse order (members before containers).
    """

    by_kind: dict[ActionKind, dict[str, list[Action]]] = {kind: {} for kind in ActionKind}
    advisories: list[Advisory] = []
    for spec in specs:
        actions, found = diff_entity_type(
            provider, spec, desired.get(spec.name, {}), observed.get(spec.name, {})
        )
        advisories.extend(found)
        for kind in ActionKind:
            by_kind[kind][spec.name] = [action for action in actions if action.kind is kind]

    forward = [spec.name for spec in specs]
    ordered: list[Action] = []
    for kind, type_order in (
        (ActionKind.CREATE, forward),
        (ActionKind.UPDATE, forward),
        (ActionKind.DELETE, list(reversed(forward))),
    ):
        for name in type_order:
            ordered.extend(by_kind[kind][name])

    return ActionPlan(
        provider=provider,
        actions=tuple(_link_dependencies(ordered, specs)),
        advisories=tuple(advisories),
        entity_types=tuple(forward),
    )


def _link_dependencies(actions: list[Action], specs: Sequence[EntityTypeSpec]) -> list[Action]:
    spec_by_name = {spec.name: spec for spec in specs}
    creates = {
        (action.entity_type, action.key) for action in actions if action.kind is ActionKind.CREATE
    }
    child_deletes: dict[tuple[str, EntityKey], list[ActionId]] = {}
    for action in actions:
        if action.kind is ActionKind.DELETE:
            for container in spec_by_name[action.entity_type].containers(action.key):
                child_deletes.setdefault(container, []).append(action.id)

    linked: list[Action] = []
    for action in actions:
        spec = spec_by_name[action.entity_type]
        depends_on: list[ActionId] = []
        if action.kind is ActionKind.DELETE:
            depends_on.extend(child_deletes.get((action.entity_type, action.key), ()))
        else:
            depends_on.extend(
                (ActionKind.CREATE.value, entity_type, key)
                for entity_type, key in spec.containers(action.key)
                if (entity_type, key) in creates
            )
        linked.append(replace(action, depends_on=tuple(depends_on)) if depends_on else action)
    return linked


def _jsonable(value: object) -> object:
    normalized = normalize(value)
    if isinstance(normalized, tuple):
        return [_jsonable(item) for item in normalized]
    if isinstance(normalized, (str, int, float, bool)) or normalized is None:
        return normalized
    return str(normalized)


def _render_value(value: object) -> str:
    return json.dumps(_jsonable(value), sort_keys=True)


__all__ = ["ActionPlan", "build_plan", "diff_entity_type", "format_key", "normalize"]
