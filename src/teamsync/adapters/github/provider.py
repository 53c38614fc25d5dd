"""GitHub provider: repositories, teams, team memberships and repo access."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, cast

from teamsync.domain.errors import RejectedActionError
from teamsync.domain.projections import repo_team_grants, synced_repositories
from teamsync.domain.reconciliation import ActionKind, EntityState, EntityTypeSpec

if TYPE_CHECKING:
    from collections.abc import Mapping

    from teamsync.domain.expansion import ExpandedModel
    from teamsync.domain.ports import ProviderAdapter
    from teamsync.domain.reconciliation import Action, EntityKey

    from .client import GitHubClient
    from .schema import TeamPayload, TeamRole

log = getLogger(__name__)

# Teams carrying this description are owned by teamsync; others are adopted when
# desired and otherwise never touched.
MANAGED_DESCRIPTION = "Managed by the team repository."
DEFAULT_PRIVACY = "closed"
DEFAULT_ROLE = "member"
# GitHub reports organization owners as maintainers of every team they are in.
OWNER_ROLE = "maintainer"

REPOSITORY = EntityTypeSpec(
    name="repository",
    tracked_fields=("description", "homepage"),
    allow_delete=False,
)
TEAM = EntityTypeSpec(name="team", tracked_fields=("description", "privacy"))
TEAM_MEMBERSHIP = EntityTypeSpec(name="team-membership", tracked_fields=("role",), parent="team")


def _repo_of(key: EntityKey) -> EntityKey:
    return (key[0], key[2])


REPO_TEAM_ACCESS = EntityTypeSpec(
    name="repo-team-access",
    tracked_fields=("permission",),
    parent="team",
    requires=((REPOSITORY.name, _repo_of),),
)

_SLUG_SEPARATORS = re.compile(r"[^a-z0-9_]+")


def team_slug(name: str) -> str:
    """Slug GitHub derives from a team name."""

    return _SLUG_SEPARATORS.sub("-", name.lower()).strip("-")


@dataclass(slots=True)
class GitHubProvider:
    client: GitHubClient
    orgs: tuple[str, ...]
    name: str = "github"
    entity_types: tuple[EntityTypeSpec, ...] = (
        REPOSITORY,
        TEAM,
        TEAM_MEMBERSHIP,
        REPO_TEAM_ACCESS,
    )
    _teams: dict[tuple[str, str], TeamPayload] | None = field(default=None, init=False, repr=False)
    _desired_teams: set[tuple[str, str]] = field(default_factory=set, init=False, repr=False)
    _owners: dict[str, frozenset[str]] = field(default_factory=dict, init=False, repr=False)

    def desired_state(
        self,
        model: ExpandedModel,
        entity_type: EntityTypeSpec,
    ) -> Mapping[EntityKey, EntityState]:
        if entity_type.name == REPOSITORY.name:
            return {
                (repo.org, repo.name): EntityState(
                    {"description": repo.description, "homepage": repo.homepage}
                )
                for repo in synced_repositories(model)
                if repo.org in self.orgs
            }
        projections = [team for team in model.github_teams() if team.org in self.orgs]
        if entity_type.name == TEAM.name:
            desired = {
                (team.org, team.name): EntityState(
                    {"description": MANAGED_DESCRIPTION, "privacy": DEFAULT_PRIVACY}
                )
                for team in projections
            }
            self._desired_teams = set(desired)
            return desired
        if entity_type.name == TEAM_MEMBERSHIP.name:
            return {
                (team.org, team.name, member): EntityState(
                    {"role": self._expected_role(team.org, member)}
                )
                for team in projections
                for member in team.members
            }
        if entity_type.name == REPO_TEAM_ACCESS.name:
            return {
                (grant.org, grant.team, grant.repo): EntityState(
                    {"permission": grant.permission.value}
                )
                for grant in repo_team_grants(model)
                if grant.org in self.orgs
            }
        raise ValueError(f"unknown entity type {entity_type.name!r}")

    def fetch_observed(self, entity_type: EntityTypeSpec) -> Mapping[EntityKey, EntityState]:
        if entity_type.name == REPOSITORY.name:
            return {
                (org, repo.name): EntityState(
                    {"description": repo.description or "", "homepage": repo.homepage or None},
                    handle=repo.id,
                )
                for org in self.orgs
                for repo in self.client.list_repos(org)
            }
        teams = self._observed_teams()
        if entity_type.name == TEAM.name:
            return {
                key: EntityState(
                    {"description": team.description, "privacy": team.privacy},
                    handle=team.slug,
                    protected=not _is_managed(team),
                )
                for key, team in teams.items()
            }
        # unmarked teams are only looked into once they are adopted
        slugs = {
            (org, team.slug): (org, name)
            for (org, name), team in teams.items()
            if _is_managed(team) or (org, name) in self._desired_teams
        }
        if entity_type.name == TEAM_MEMBERSHIP.name:
            members = self.client.team_members(slugs)
            return {
                (*slugs[team], login): EntityState({"role": role}, handle=team[1])
                for team, roles in members.items()
                for login, role in roles.items()
            }
        if entity_type.name == REPO_TEAM_ACCESS.name:
            repos = self.client.team_repos(slugs)
            return {
                (*slugs[team], repo.name): EntityState(
                    {"permission": repo.role_name}, handle=team[1]
                )
                for team, team_repos in repos.items()
                for repo in team_repos
                if repo.owner.login == team[0]
            }
        raise ValueError(f"unknown entity type {entity_type.name!r}")

    def apply(self, action: Action) -> None:
        if action.entity_type == REPOSITORY.name:
            self._apply_repository(action)
        elif action.entity_type == TEAM.name:
            self._apply_team(action)
        elif action.entity_type == TEAM_MEMBERSHIP.name:
            self._apply_membership(action)
        elif action.entity_type == REPO_TEAM_ACCESS.name:
            self._apply_repo_access(action)
        else:
            raise RejectedActionError(f"github: unsupported entity type {action.entity_type!r}")

    def _observed_teams(self) -> dict[tuple[str, str], TeamPayload]:
        if self._teams is None:
            self._teams = {
                (org, team.name): team for org in self.orgs for team in self.client.list_teams(org)
            }
            managed = sum(1 for team in self._teams.values() if _is_managed(team))
            log.debug(f"Found {len(self._teams)} GitHub teams, {managed} managed")
        return self._teams

    def _expected_role(self, org: str, login: str) -> str:
        if org not in self._owners:
            self._owners[org] = frozenset(self.client.org_owners(org))
            log.debug(f"Found {len(self._owners[org])} owners of {org}")
        return OWNER_ROLE if login in self._owners[org] else DEFAULT_ROLE

    def _apply_repository(self, action: Action) -> None:
        org, name = _str_parts(action.key)
        if action.kind is ActionKind.CREATE:
            self.client.create_repo(
                org,
                name,
                description=str(action.fields["description"]),
                homepage=_optional_str(action.fields.get("homepage")),
            )
        elif action.kind is ActionKind.UPDATE:
            self.client.edit_repo(org, name, dict(action.fields))
        else:
            raise RejectedActionError(f"github: repositories are never deleted ({org}/{name})")

    def _apply_team(self, action: Action) -> None:
        org, name = _str_parts(action.key)
        slug = _slug(action)
        if action.kind is ActionKind.CREATE:
            self.client.create_team(
                org, name, description=MANAGED_DESCRIPTION, privacy=DEFAULT_PRIVACY
            )
        elif action.kind is ActionKind.UPDATE:
            self.client.edit_team(org, slug, dict(action.fields))
        else:
            self.client.delete_team(org, slug)

    def _apply_membership(self, action: Action) -> None:
        org, _name, login = _str_parts(action.key)
        slug = _slug(action)
        if action.kind is ActionKind.DELETE:
            self.client.remove_membership(org, slug, login)
        else:
            self.client.set_membership(org, slug, login, cast("TeamRole", action.fields["role"]))

    def _apply_repo_access(self, action: Action) -> None:
        org, _name, repo = _str_parts(action.key)
        slug = _slug(action)
        if action.kind is ActionKind.DELETE:
            self.client.remove_team_repo(org, slug, repo)
        else:
            self.client.set_team_repo_permission(org, slug, repo, str(action.fields["permission"]))


def _is_managed(team: TeamPayload) -> bool:
    return team.description == MANAGED_DESCRIPTION


def _slug(action: Action) -> str:
    if isinstance(action.handle, str):
        return action.handle
    return team_slug(str(action.key[1]))


def _str_parts(key: EntityKey) -> tuple[str, ...]:
    return tuple(str(part) for part in key)


def _optional_str(value: object) -> str | None:
    return None if value is None else str(value)


if TYPE_CHECKING:
    _provider_check: type[ProviderAdapter] = GitHubProvider
