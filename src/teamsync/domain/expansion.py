"""Expand a record snapshot into effective memberships and derived views.

Teams are laid out as an index-based dependency graph. Edges point from a
team to every team whose membership it needs:

- ``included-teams``,
- parent -> subteam (``subteam-of`` read backwards),
- every ordinary team for ``include-all-team-members``,
- every non-alumni team for ``include-all-alumni``.

Cycles are rejected with an iterative three-colour depth-first search before
any membership is computed. The same search yields a post-order in which each
team's dependencies are already resolved, so every team is expanded exactly
once.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from teamsync.domain.errors import CycleError, DanglingReferenceError
from teamsync.domain.model import PermissionGrants, TeamKind

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Mapping

    from teamsync.domain.model import Permission, Person, Repository, Snapshot, Team

log = getLogger(__name__)

_WHITE, _GRAY, _BLACK = 0, 1, 2


@dataclass(frozen=True, slots=True)
class ChatMember:
    """Member of a chat group.

    ``github`` is ``None`` for raw ids added through ``extra-ids``; ``chat_id``
    is ``None`` for people without a known chat account.
    """

    github: str | None
    chat_id: int | None

    @property
    def sort_key(self) -> tuple[str, int]:
        return (self.github or "", self.chat_id or 0)


@dataclass(frozen=True, slots=True, kw_only=True)
class ExpandedMailingList:
    address: str
    team: str
    # Encrypted tokens are kept as-is; decrypting is the provider's job.
    emails: tuple[str, ...]


@dataclass(frozen=True, slots=True, kw_only=True)
class ExpandedChatGroup:
    name: str
    team: str
    members: tuple[ChatMember, ...]
    excluded_not_included: tuple[str, ...] = ()

    @property
    def chat_ids(self) -> frozenset[int]:
        return frozenset(m.chat_id for m in self.members if m.chat_id is not None)


@dataclass(frozen=True, slots=True, kw_only=True)
class GitHubTeamProjection:
    org: str
    name: str
    team: str
    members: tuple[str, ...]


@dataclass(frozen=True, slots=True, kw_only=True)
class ExpandedModel:
    """Read-only view of a snapshot with every derived membership resolved."""

    snapshot: Snapshot
    people_by_name: Mapping[str, Person]
    teams_by_name: Mapping[str, Team]
    memberships: Mapping[str, frozenset[str]]
    children: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def person(self, github: str) -> Person | None:
        return self.people_by_name.get(github)

    def team(self, name: str) -> Team | None:
        return self.teams_by_name.get(name)

    @property
    def teams(self) -> tuple[Team, ...]:
        return tuple(self.teams_by_name.values())

    def members(self, team: str) -> frozenset[str]:
        """Effective membership of an active team."""

        return self.memberships[team]

    def active_members(self) -> frozenset[str]:
        active: set[str] = set()
        for team in self.teams:
            if not team.is_alumni_team:
                active.update(self.memberships[team.name])
        return frozenset(active)

    def subteams_of(self, team: str) -> tuple[str, ...]:
        """Every direct and transitive subteam of ``team``, breadth first."""

        found: list[str] = []
        pending = list(self.children.get(team, ()))
        while pending:
            name = pending.pop(0)
            if name in found or name == team:
                continue
            found.append(name)
            pending.extend(self.children.get(name, ()))
        return tuple(found)

    def teams_of(self, github: str) -> tuple[Team, ...]:
        return tuple(team for team in self.teams if github in self.memberships[team.name])

    def effective_permissions(self, github: str) -> PermissionGrants:
        person = self.person(github)
        grants = [person.permissions] if person is not None else []
        for team in self.teams:
            if github in self.memberships[team.name]:
                grants.append(team.permissions)
            if github in team.people.leads:
                grants.append(team.leads_permissions)
        return PermissionGrants().union(*grants).effective()

    def people_with(self, permission: Permission) -> tuple[str, ...]:
        return tuple(
            sorted(
                github
                for github in self.people_by_name
                if self.effective_permissions(github).has(permission)
            )
        )

    def mailing_lists(self) -> tuple[ExpandedMailingList, ...]:
        expanded: list[ExpandedMailingList] = []
        for team in self.teams:
            for mailing_list in team.mailing_lists:
                names: set[str] = set()
                if mailing_list.include_team_members:
                    names.update(self.memberships[team.name])
                if mailing_list.include_subteam_members:
                    for subteam in self.subteams_of(team.name):
                        names.update(self.memberships[subteam])
                names.update(mailing_list.extra_people)
                for extra in mailing_list.extra_teams:
                    names.update(self.memberships[extra])

                emails = sorted(
                    {
                        person.email.value
                        for person in self._people(names)
                        if person.email.is_present and person.email.value is not None
                    }
                )
                emails.extend(e for e in mailing_list.extra_emails if e not in emails)
                expanded.append(
                    ExpandedMailingList(
                        address=mailing_list.address,
                        team=team.name,
                        emails=tuple(emails),
                    )
                )
        return tuple(expanded)

    def chat_groups(self) -> tuple[ExpandedChatGroup, ...]:
        expanded: list[ExpandedChatGroup] = []
        for team in self.teams:
            for group in team.chat_groups:
                names: set[str] = set()
                if group.include_team_members:
                    names.update(self.memberships[team.name])
                names.update(group.extra_people)
                for extra in group.extra_teams:
                    names.update(self.memberships[extra])
                # Exclusions win over every inclusion path.
                not_included = tuple(p for p in group.excluded_people if p not in names)
                names.difference_update(group.excluded_people)

                members = [ChatMember(p.github, p.zulip_id) for p in self._people(names)]
                members.extend(ChatMember(None, chat_id) for chat_id in group.extra_ids)
                expanded.append(
                    ExpandedChatGroup(
                        name=group.name,
                        team=team.name,
                        members=tuple(sorted(set(members), key=lambda m: m.sort_key)),
                        excluded_not_included=not_included,
                    )
                )
        return tuple(expanded)

    def github_teams(self) -> tuple[GitHubTeamProjection, ...]:
        projections: list[GitHubTeamProjection] = []
        for team in self.teams:
            for integration in team.github:
                names = set(self.memberships[team.name])
                for extra in integration.extra_teams:
                    names.update(self.memberships[extra])
                members = tuple(sorted(p.github for p in self._people(names)))
                projections.extend(
                    GitHubTeamProjection(
                        org=org,
                        name=integration.team_name or team.name,
                        team=team.name,
                        members=members,
                    )
                    for org in integration.orgs
                )
        return tuple(projections)

    def configured_github_teams(self) -> frozenset[tuple[str, str]]:
        return frozenset(pair for team in self.teams for pair in team.github_team_names())

    def _people(self, names: Iterable[str]) -> Iterator[Person]:
        for name in sorted(names):
            person = self.people_by_name.get(name)
            if person is not None:
                yield person


def expand(snapshot: Snapshot) -> ExpandedModel:
    """Resolve effective memberships for every active team of ``snapshot``.

    Raises ``DanglingReferenceError`` for the first reference, in record order,
    to a missing person or team and ``CycleError`` if the team graph is cyclic.
    """

    people = _first_by(snapshot.people, lambda person: person.github)
    teams = _first_by(snapshot.teams, lambda team: team.name)
    _check_references(snapshot, people, teams)

    names = list(teams)
    index = {name: position for position, name in enumerate(names)}
    ordinary = [name for name in names if _is_ordinary(teams[name])]
    non_alumni = [name for name in names if not teams[name].is_alumni_team]
    adjacency = _build_graph(names, teams, index, ordinary=ordinary, non_alumni=non_alumni)
    order = _post_order(names, adjacency)

    explicit_alumni = {
        alumnus
        for team in (*snapshot.teams, *snapshot.archived_teams)
        for alumnus in team.people.alumni_names
    }
    leads_by_kind: defaultdict[TeamKind, list[Team]] = defaultdict(list)
    for team in teams.values():
        leads_by_kind[team.kind].append(team)

    memberships: dict[str, frozenset[str]] = {}
    # alumni teams depend on every other team, so all of those resolve first
    retired: frozenset[str] | None = None
    for position in order:
        team = teams[names[position]]
        if team.is_alumni_team and retired is None:
            active = {person for name in non_alumni for person in memberships[name]}
            retired = frozenset(explicit_alumni - active)
        memberships[team.name] = _expand_team(
            team,
            memberships,
            ordinary=ordinary,
            leads_by_kind=leads_by_kind,
            retired=retired or frozenset(),
        )

    children: defaultdict[str, list[str]] = defaultdict(list)
    for team in teams.values():
        if team.subteam_of is not None:
            children[team.subteam_of].append(team.name)

    log.debug("Expanded %d teams for %d people", len(memberships), len(people))
    return ExpandedModel(
        snapshot=snapshot,
        people_by_name=people,
        teams_by_name=teams,
        memberships=memberships,
        children={parent: tuple(subteams) for parent, subteams in children.items()},
    )


def _first_by[T](items: Iterable[T], key: Callable[[T], str]) -> dict[str, T]:
    indexed: dict[str, T] = {}
    for item in items:
        indexed.setdefault(key(item), item)
    return indexed


def _build_graph(
    names: list[str],
    teams: Mapping[str, Team],
    index: Mapping[str, int],
    *,
    ordinary: list[str],
    non_alumni: list[str],
) -> list[list[int]]:
    ordinary_positions = [index[name] for name in ordinary]
    non_alumni_positions = [index[name] for name in non_alumni]
    edges: list[set[int]] = [set() for _ in names]
    for position, name in enumerate(names):
        team = teams[name]
        edges[position].update(index[included] for included in team.people.included_teams)
        if team.subteam_of is not None:
            edges[index[team.subteam_of]].add(position)
        if team.people.include_all_team_members:
            edges[position].update(p for p in ordinary_positions if p != position)
        if team.is_alumni_team:
            edges[position].update(p for p in non_alumni_positions if p != position)
    return [sorted(targets) for targets in edges]


def _post_order(names: list[str], adjacency: list[list[int]]) -> list[int]:
    color = [_WHITE] * len(names)
    order: list[int] = []
    for root in range(len(names)):
        if color[root] != _WHITE:
            continue
        color[root] = _GRAY
        path = [root]
        stack = [(root, iter(adjacency[root]))]
        while stack:
            node, successors = stack[-1]
            successor = next(successors, None)
            if successor is None:
                stack.pop()
                path.pop()
                color[node] = _BLACK
                order.append(node)
            elif color[successor] == _GRAY:
                cycle = [names[i] for i in path[path.index(successor) :]]
                cycle.append(names[successor])
                raise CycleError(names[successor], tuple(cycle))
            elif color[successor] == _WHITE:
                color[successor] = _GRAY
                path.append(successor)
                stack.append((successor, iter(adjacency[successor])))
    return order


def _expand_team(
    team: Team,
    resolved: Mapping[str, frozenset[str]],
    *,
    ordinary: list[str],
    leads_by_kind: Mapping[TeamKind, list[Team]],
    retired: frozenset[str],
) -> frozenset[str]:
    members = set(team.people.member_names)
    for included in team.people.included_teams:
        members.update(resolved[included])

    for kind in team.people.lead_kinds:
        for other in leads_by_kind.get(kind, ()):
            if other.name != team.name:
                members.update(other.people.leads)
    if team.people.include_all_team_members:
        for name in ordinary:
            if name != team.name:
                members.update(resolved[name])
    if team.is_alumni_team:
        members.update(retired)

    members.difference_update(team.people.alumni_names)
    return frozenset(members)


def _is_ordinary(team: Team) -> bool:
    return team.kind is TeamKind.TEAM and not team.is_alumni_team


def _check_references(
    snapshot: Snapshot,
    people: Mapping[str, Person],
    teams: Mapping[str, Team],
) -> None:
    github_team_names = {
        name for team in teams.values() for _org, name in team.github_team_names()
    }
    for team in snapshot.teams:
        _check_team(team, people, teams)
    for team in snapshot.archived_teams:
        referrer = f"archived team `{team.name}`"
        _require("person", team.people.leads, people, referrer)
        _require("person", team.people.member_names, people, referrer)
        _require("person", team.people.alumni_names, people, referrer)
    for repo in snapshot.all_repos:
        _check_repo(repo, people, github_team_names)


def _check_team(team: Team, people: Mapping[str, Person], teams: Mapping[str, Team]) -> None:
    referrer = f"team `{team.name}`"
    if team.subteam_of is not None:
        _require("team", (team.subteam_of,), teams, referrer)
    _require("person", team.people.leads, people, referrer)
    _require("person", team.people.member_names, people, referrer)
    _require("person", team.people.alumni_names, people, referrer)
    _require("team", team.people.included_teams, teams, referrer)
    for integration in team.github:
        _require("team", integration.extra_teams, teams, referrer)
    for mailing_list in team.mailing_lists:
        list_referrer = f"mailing list `{mailing_list.address}`"
        _require("person", mailing_list.extra_people, people, list_referrer)
        _require("team", mailing_list.extra_teams, teams, list_referrer)
    for group in team.chat_groups:
        group_referrer = f"chat group `{group.name}`"
        _require("person", group.extra_people, people, group_referrer)
        _require("team", group.extra_teams, teams, group_referrer)
        _require("person", group.excluded_people, people, group_referrer)


def _check_repo(
    repo: Repository,
    people: Mapping[str, Person],
    github_team_names: set[str],
) -> None:
    referrer = f"repo `{repo.slug}`"
    _require("GitHub team", (name for name, _ in repo.access.teams), github_team_names, referrer)
    _require("person", (name for name, _ in repo.access.individuals), people, referrer)
    for protection in repo.branch_protections:
        _require("GitHub team", protection.allowed_merge_teams, github_team_names, referrer)


def _require(
    kind: str,
    names: Iterable[str],
    known: Mapping[str, object] | set[str],
    referrer: str,
) -> None:
    for name in names:
        if name not in known:
            raise DanglingReferenceError(kind, name, referrer=referrer)
