"""Teams and the integrations declared on them."""

from __future__ import annotations

from dataclasses import dataclass, field

from teamsync.domain.model.enums import TeamKind
from teamsync.domain.model.permissions import PermissionGrants


@dataclass(frozen=True, slots=True)
class TeamMember:
    github: str
    roles: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class TeamPeople:
    """Explicit people of a team plus the aggregate inclusion flags."""

    leads: tuple[str, ...] = ()
    members: tuple[TeamMember, ...] = ()
    alumni: tuple[TeamMember, ...] = ()
    included_teams: tuple[str, ...] = ()
    include_team_leads: bool = False
    include_wg_leads: bool = False
    include_project_group_leads: bool = False
    include_all_team_members: bool = False
    include_all_alumni: bool = False

    @property
    def member_names(self) -> tuple[str, ...]:
        return tuple(member.github for member in self.members)

    @property
    def alumni_names(self) -> tuple[str, ...]:
        return tuple(member.github for member in self.alumni)

    @property
    def lead_kinds(self) -> tuple[TeamKind, ...]:
        """Kinds of teams whose leads are pulled into this team."""

        flagged = (
            (self.include_team_leads, TeamKind.TEAM),
            (self.include_wg_leads, TeamKind.WORKING_GROUP),
            (self.include_project_group_leads, TeamKind.PROJECT_GROUP),
        )
        return tuple(kind for enabled, kind in flagged if enabled)


@dataclass(frozen=True, slots=True, kw_only=True)
class GitHubIntegration:
    orgs: tuple[str, ...]
    team_name: str | None = None
    extra_teams: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class MailingList:
    address: str
    include_team_members: bool = True
    include_subteam_members: bool = False
    extra_people: tuple[str, ...] = ()
    extra_emails: tuple[str, ...] = ()
    extra_teams: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class ChatGroup:
    name: str
    include_team_members: bool = True
    extra_people: tuple[str, ...] = ()
    extra_ids: tuple[int, ...] = ()
    extra_teams: tuple[str, ...] = ()
    excluded_people: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class MemberRole:
    id: str
    description: str


@dataclass(frozen=True, slots=True, kw_only=True)
class Team:
    name: str
    kind: TeamKind = TeamKind.TEAM
    subteam_of: str | None = None
    top_level: bool | None = None
    people: TeamPeople = field(default_factory=TeamPeople)
    permissions: PermissionGrants = field(default_factory=PermissionGrants)
    leads_permissions: PermissionGrants = field(default_factory=PermissionGrants)
    github: tuple[GitHubIntegration, ...] = ()
    mailing_lists: tuple[MailingList, ...] = ()
    chat_groups: tuple[ChatGroup, ...] = ()
    roles: tuple[MemberRole, ...] = ()

    @property
    def is_alumni_team(self) -> bool:
        return self.people.include_all_alumni

    def github_team_names(self) -> tuple[tuple[str, str], ...]:
        """``(org, team name)`` pairs this team is mirrored to."""

        return tuple(
            (org, integration.team_name or self.name)
            for integration in self.github
            for org in integration.orgs
        )
