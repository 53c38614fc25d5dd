"""Translate validated record payloads into domain objects."""

from __future__ import annotations

from typing import TYPE_CHECKING

from teamsync.domain.model import (
    BranchProtection,
    ChatGroup,
    Email,
    GitHubIntegration,
    MailingList,
    MemberRole,
    OrgPolicy,
    PermissionCatalog,
    PermissionGrants,
    Person,
    RepoAccess,
    Repository,
    Team,
    TeamMember,
    TeamPeople,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .schema import (
        ConfigRecord,
        PermissionsTable,
        PersonRecord,
        RepoRecord,
        TeamMemberRecord,
        TeamRecord,
    )


def to_policy(record: ConfigRecord) -> OrgPolicy:
    return OrgPolicy(
        allowed_list_domains=frozenset(record.allowed_mailing_lists_domains),
        allowed_github_orgs=frozenset(record.allowed_github_orgs),
        permissions=PermissionCatalog(
            flags=tuple(sorted(record.permissions_bools)),
            merge_bot_repos=tuple(sorted(record.permissions_bors_repos)),
        ),
    )


def to_person(record: PersonRecord, catalog: PermissionCatalog) -> Person:
    if record.email is False:
        email = Email.disabled()
    else:
        email = Email.from_raw(record.email if isinstance(record.email, str) else None)
    return Person(
        github=record.github,
        github_id=record.github_id,
        name=record.name,
        zulip_id=record.zulip_id,
        discord_id=record.discord_id,
        matrix=record.matrix,
        irc=record.irc,
        email=email,
        permissions=to_grants(record.permissions, catalog),
    )


def to_team(record: TeamRecord, catalog: PermissionCatalog) -> Team:
    people = record.people
    return Team(
        name=record.name,
        kind=record.kind,
        subteam_of=record.subteam_of,
        top_level=record.top_level,
        people=TeamPeople(
            leads=tuple(people.leads),
            members=tuple(_member(entry) for entry in people.members),
            alumni=tuple(_member(entry) for entry in people.alumni or ()),
            included_teams=tuple(people.included_teams),
            include_team_leads=people.include_team_leads,
            include_wg_leads=people.include_wg_leads,
            include_project_group_leads=people.include_project_group_leads,
            include_all_team_members=people.include_all_team_members,
            include_all_alumni=people.include_all_alumni,
        ),
        permissions=to_grants(record.permissions, catalog),
        leads_permissions=to_grants(record.leads_permissions, catalog),
        github=tuple(
            GitHubIntegration(
                orgs=tuple(entry.orgs),
                team_name=entry.team_name,
                extra_teams=tuple(entry.extra_teams),
            )
            for entry in record.github
        ),
        mailing_lists=tuple(
            MailingList(
                address=entry.address,
                include_team_members=entry.include_team_members,
                include_subteam_members=entry.include_subteam_members,
                extra_people=tuple(entry.extra_people),
                extra_emails=tuple(entry.extra_emails),
                extra_teams=tuple(entry.extra_teams),
            )
            for entry in record.lists
        ),
        chat_groups=tuple(
            ChatGroup(
                name=entry.name,
                include_team_members=entry.include_team_members,
                extra_people=tuple(entry.extra_people),
                extra_ids=tuple(entry.extra_zulip_ids),
                extra_teams=tuple(entry.extra_teams),
                excluded_people=tuple(entry.excluded_people),
            )
            for entry in record.zulip_groups
        ),
        roles=tuple(MemberRole(id=role.id, description=role.description) for role in record.roles),
    )


def to_repo(record: RepoRecord) -> Repository:
    return Repository(
        org=record.org,
        name=record.name,
        description=record.description,
        homepage=record.homepage,
        bots=tuple(record.bots),
        private_non_synced=bool(record.private_non_synced),
        access=RepoAccess(
            teams=tuple(sorted(record.access.teams.items())),
            individuals=tuple(sorted(record.access.individuals.items())),
        ),
        branch_protections=tuple(
            BranchProtection(
                pattern=entry.pattern,
                ci_checks=tuple(entry.ci_checks) if entry.ci_checks is not None else None,
                dismiss_stale_review=entry.dismiss_stale_review,
                required_approvals=entry.required_approvals,
                pr_required=entry.pr_required,
                allowed_merge_teams=tuple(entry.allowed_merge_teams),
            )
            for entry in record.branch_protections
        ),
    )


def to_grants(table: PermissionsTable, catalog: PermissionCatalog) -> PermissionGrants:
    """Parse a permissions table, rejecting names the catalog does not know.

    Disabled entries (``= false``) are still checked against the catalog.
    """

    granted = []
    for name, enabled in _flatten(table):
        permission = catalog.parse(name)
        if enabled:
            granted.append(permission)
    return PermissionGrants.of(granted)


def _flatten(table: PermissionsTable) -> Iterator[tuple[str, bool]]:
    for key, value in sorted(table.items()):
        if isinstance(value, bool):
            yield key, value
            continue
        for repo, acl in sorted(value.items()):
            for access, enabled in sorted(acl.items()):
                yield f"{key}.{repo}.{access}", enabled


def _member(entry: str | TeamMemberRecord) -> TeamMember:
    if isinstance(entry, str):
        return TeamMember(github=entry)
    return TeamMember(github=entry.github, roles=tuple(entry.roles))
