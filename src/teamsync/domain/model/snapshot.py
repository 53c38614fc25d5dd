"""The loaded record set, passed explicitly through one run."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from teamsync.domain.model.permissions import PermissionCatalog

if TYPE_CHECKING:
    from teamsync.domain.model.people import Person
    from teamsync.domain.model.repos import Repository
    from teamsync.domain.model.teams import Team


@dataclass(frozen=True, slots=True, kw_only=True)
class OrgPolicy:
    allowed_list_domains: frozenset[str] = frozenset()
    allowed_github_orgs: frozenset[str] = frozenset()
    permissions: PermissionCatalog = field(default_factory=PermissionCatalog)


@dataclass(frozen=True, slots=True, kw_only=True)
class Snapshot:
    """Typed record set.

    Collections are tuples rather than mappings so duplicated names survive
    loading and can be reported by the validator.
    """

    people: tuple[Person, ...] = ()
    teams: tuple[Team, ...] = ()
    archived_teams: tuple[Team, ...] = ()
    repos: tuple[Repository, ...] = ()
    archived_repos: tuple[Repository, ...] = ()
    policy: OrgPolicy = field(default_factory=OrgPolicy)

    @property
    def all_repos(self) -> tuple[Repository, ...]:
        return (*self.repos, *self.archived_repos)
