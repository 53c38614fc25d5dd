"""Shared reconciliation contract components.

This module holds only the value types that flow between the provider port,
the planner and the engine:
- entity keys and per-entity state
- entity-type declarations (tracked fields, deletion policy, parent type)
- actions, field changes and advisories
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping


type KeyPart = str | int
type EntityKey = tuple[KeyPart, ...]
type ActionId = tuple[str, str, EntityKey]


class ActionKind(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True, slots=True)
class EntityState:
    """Tracked fields of one entity plus an opaque provider handle.

    The handle (a remote id, a URL...) travels with the entity so ``apply``
    can address it; it never takes part in comparisons. An observed entity
    marked ``protected`` is never deleted, even when its type allows it.
    """

    fields: Mapping[str, object]
    handle: object = field(default=None, compare=False)
    protected: bool = field(default=False, compare=False)


@dataclass(frozen=True, slots=True, kw_only=True)
class EntityTypeSpec:
    """Declaration of one syncable entity type of a provider.

    ``parent`` names the container type; ``parent_key`` maps a key of this
    type to the key of its container and defaults to dropping the last part.
    ``requires`` lists further types, with their key mapping, whose entity
    must exist before one of this type can be created.
    """

    name: str
    tracked_fields: tuple[str, ...]
    allow_delete: bool = True
    parent: str | None = None
    parent_key: Callable[[EntityKey], EntityKey] | None = None
    requires: tuple[tuple[str, Callable[[EntityKey], EntityKey]], ...] = ()

    def container_key(self, key: EntityKey) -> EntityKey | None:
        if self.parent is None:
            return None
        if self.parent_key is not None:
            return self.parent_key(key)
        return key[:-1]

    def containers(self, key: EntityKey) -> tuple[tuple[str, EntityKey], ...]:
        """Every ``(entity type, key)`` the entity at ``key`` depends on."""

        found: list[tuple[str, EntityKey]] = []
        container = self.container_key(key)
        if self.parent is not None and container is not None:
            found.append((self.parent, container))
        found.extend((name, key_of(key)) for name, key_of in self.requires)
        return tuple(found)


@dataclass(frozen=True, slots=True)
class FieldChange:
    before: object
    after: object


@dataclass(frozen=True, slots=True, kw_only=True)
class Action:
    provider: str
    entity_type: str
    kind: ActionKind
    key: EntityKey
    fields: Mapping[str, object] = field(default_factory=dict)
    changes: Mapping[str, FieldChange] = field(default_factory=dict)
    handle: object = field(default=None, compare=False)
    depends_on: tuple[ActionId, ...] = ()

    @property
    def id(self) -> ActionId:
        return (self.kind.value, self.entity_type, self.key)

    def describe(self) -> str:
        return f"{self.kind} {self.entity_type} {format_key(self.key)}"


@dataclass(frozen=True, slots=True, kw_only=True)
class Advisory:
    provider: str
    entity_type: str
    key: EntityKey
    message: str

    def describe(self) -> str:
        return f"advisory {self.entity_type} {format_key(self.key)}: {self.message}"


def format_key(key: EntityKey) -> str:
    return "(" + ", ".join(str(part) for part in key) + ")"
