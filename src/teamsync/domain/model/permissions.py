"""Closed permission vocabulary and grant sets.

Two shapes exist: boolean flags (``perf``, ``crater``...) and merge-bot
rights scoped to one repository. ``review`` on a repo subsumes ``try`` on
the same repo, so holding both directly is reported by the validator and the
effective set keeps only ``review``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from teamsync.domain.errors import UnknownPermissionError
from teamsync.domain.model.enums import MergeBotAccess

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

MERGE_BOT_PREFIX = "bors"
_MERGE_BOT_ACCESS_NAMES = frozenset(access.value for access in MergeBotAccess)


@dataclass(frozen=True, slots=True, order=True)
class FlagGrant:
    flag: str

    def __str__(self) -> str:
        return self.flag


@dataclass(frozen=True, slots=True, order=True)
class MergeBotGrant:
    repo: str
    access: MergeBotAccess

    def __str__(self) -> str:
        return f"{MERGE_BOT_PREFIX}.{self.repo}.{self.access}"


type Permission = FlagGrant | MergeBotGrant


@dataclass(frozen=True, slots=True)
class PermissionGrants:
    """Immutable set of grants held by a person, a team or a team's leads."""

    grants: frozenset[Permission] = field(default_factory=frozenset["Permission"])

    @classmethod
    def of(cls, grants: Iterable[Permission]) -> PermissionGrants:
        return cls(frozenset(grants))

    def __iter__(self) -> Iterator[Permission]:
        return iter(sorted(self.grants, key=str))

    def __len__(self) -> int:
        return len(self.grants)

    def __str__(self) -> str:
        return ", ".join(str(grant) for grant in self)

    @property
    def is_empty(self) -> bool:
        return not self.grants

    def has_directly(self, permission: Permission) -> bool:
        return permission in self.grants

    def has(self, permission: Permission) -> bool:
        """Return True when ``permission`` is granted directly or implied."""

        if self.has_directly(permission):
            return True
        if isinstance(permission, MergeBotGrant) and permission.access is MergeBotAccess.TRY:
            return MergeBotGrant(permission.repo, MergeBotAccess.REVIEW) in self.grants
        return False

    def conflicts(self) -> tuple[str, ...]:
        """Repositories on which both ``review`` and ``try`` are granted."""

        return tuple(
            sorted(
                grant.repo
                for grant in self.grants
                if isinstance(grant, MergeBotGrant)
                and grant.access is MergeBotAccess.TRY
                and MergeBotGrant(grant.repo, MergeBotAccess.REVIEW) in self.grants
            )
        )

    def union(self, *others: PermissionGrants) -> PermissionGrants:
        merged = set(self.grants)
        for other in others:
            merged.update(other.grants)
        return PermissionGrants(frozenset(merged))

    def effective(self) -> PermissionGrants:
        """Drop ``try`` wherever ``review`` is held for the same repository."""

        redundant = {
            MergeBotGrant(repo, MergeBotAccess.TRY) for repo in self.conflicts()
        }
        if not redundant:
            return self
        return PermissionGrants(self.grants - redundant)


@dataclass(frozen=True, slots=True, kw_only=True)
class PermissionCatalog:
    """Names the organization recognises; anything else is rejected on load."""

    flags: tuple[str, ...] = ()
    merge_bot_repos: tuple[str, ...] = ()

    def parse(self, name: str) -> Permission:
        if name in self.flags:
            return FlagGrant(name)
        prefix, _, rest = name.partition(".")
        repo, _, access = rest.rpartition(".")
        if (
            prefix == MERGE_BOT_PREFIX
            and repo in self.merge_bot_repos
            and access in _MERGE_BOT_ACCESS_NAMES
        ):
            return MergeBotGrant(repo, MergeBotAccess(access))
        raise UnknownPermissionError(name)

    def parse_all(self, names: Iterable[str]) -> PermissionGrants:
        return PermissionGrants.of(self.parse(name) for name in names)

    def available(self) -> tuple[Permission, ...]:
        """Every permission the catalog can express, in a stable order."""

        merge_bot = (
            MergeBotGrant(repo, access)
            for repo in self.merge_bot_repos
            for access in MergeBotAccess
        )
        return (*(FlagGrant(flag) for flag in self.flags), *merge_bot)
