"""Pydantic models describing the TOML record files."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from teamsync.domain.model import Bot, RepoPermission, TeamKind

# ``perf = true`` or ``bors.<repo>.<access> = true``
type PermissionsTable = dict[str, bool | dict[str, dict[str, bool]]]


def _kebab(name: str) -> str:
    return name.replace("_", "-")


class RecordModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        alias_generator=_kebab,
        populate_by_name=True,
        frozen=True,
    )


class ConfigRecord(RecordModel):
    allowed_mailing_lists_domains: list[str] = Field(default_factory=list)
    allowed_github_orgs: list[str] = Field(default_factory=list)
    permissions_bors_repos: list[str] = Field(default_factory=list)
    permissions_bools: list[str] = Field(default_factory=list)


class PersonRecord(RecordModel):
    name: str
    github: str
    github_id: int
    zulip_id: int | None = None
    irc: str | None = None
    email: str | bool | None = None
    discord_id: int | None = None
    matrix: str | None = None
    permissions: PermissionsTable = Field(default_factory=dict)

    @field_validator("email")
    @classmethod
    def _reject_email_true(cls, value: str | bool | None) -> str | bool | None:
        if value is True:
            raise ValueError("`email = true` is not allowed; use an address or `false`")
        return value


class TeamMemberRecord(RecordModel):
    github: str
    roles: list[str] = Field(default_factory=list)


class TeamPeopleRecord(RecordModel):
    leads: list[str]
    members: list[str | TeamMemberRecord]
    alumni: list[str | TeamMemberRecord] | None = None
    included_teams: list[str] = Field(default_factory=list)
    include_team_leads: bool = False
    include_wg_leads: bool = False
    include_project_group_leads: bool = False
    include_all_team_members: bool = False
    include_all_alumni: bool = False


class GitHubRecord(RecordModel):
    team_name: str | None = None
    orgs: list[str]
    extra_teams: list[str] = Field(default_factory=list)


class ListRecord(RecordModel):
    address: str
    include_team_members: bool = True
    include_subteam_members: bool = False
    extra_people: list[str] = Field(default_factory=list)
    extra_emails: list[str] = Field(default_factory=list)
    extra_teams: list[str] = Field(default_factory=list)


class ZulipGroupRecord(RecordModel):
    name: str
    include_team_members: bool = True
    extra_people: list[str] = Field(default_factory=list)
    extra_zulip_ids: list[int] = Field(default_factory=list)
    extra_teams: list[str] = Field(default_factory=list)
    excluded_people: list[str] = Field(default_factory=list)


class RoleRecord(RecordModel):
    id: str
    description: str


class TeamRecord(RecordModel):
    name: str
    kind: TeamKind = TeamKind.TEAM
    subteam_of: str | None = None
    top_level: bool | None = None
    people: TeamPeopleRecord
    permissions: PermissionsTable = Field(default_factory=dict)
    leads_permissions: PermissionsTable = Field(default_factory=dict)
    github: list[GitHubRecord] = Field(default_factory=list)
    roles: list[RoleRecord] = Field(default_factory=list)
    lists: list[ListRecord] = Field(default_factory=list)
    zulip_groups: list[ZulipGroupRecord] = Field(default_factory=list)


class RepoAccessRecord(RecordModel):
    teams: dict[str, RepoPermission]
    individuals: dict[str, RepoPermission] = Field(default_factory=dict)


class BranchProtectionRecord(RecordModel):
    pattern: str
    ci_checks: list[str] | None = None
    dismiss_stale_review: bool = False
    required_approvals: int | None = None
    pr_required: bool = True
    allowed_merge_teams: list[str] = Field(default_factory=list)


class RepoRecord(RecordModel):
    org: str
    name: str
    description: str
    homepage: str | None = None
    private_non_synced: bool | None = None
    bots: list[Bot]
    access: RepoAccessRecord
    branch_protections: list[BranchProtectionRecord] = Field(default_factory=list)
