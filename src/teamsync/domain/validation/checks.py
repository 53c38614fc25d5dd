"""Independent validation checks over an expanded model.

Each check is a generator of diagnostics and never raises for bad records.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import TYPE_CHECKING

from teamsync.domain.model import EmailKind, TeamKind
from teamsync.domain.validation.diagnostics import Diagnostic, DiagnosticKind

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from teamsync.domain.expansion import ExpandedModel
    from teamsync.domain.model import PermissionGrants, Team

type Diagnostics = Iterator[Diagnostic]

MAX_REQUIRED_APPROVALS = 10

_KEBAB_RE = re.compile(r"^[a-z0-9-]+$")
_LIST_ADDRESS_RE = re.compile(r"^[a-zA-Z0-9_.-]+@([a-zA-Z0-9_.-]+)$")
_NAME_PREFIXES = (
    (TeamKind.WORKING_GROUP, "wg-", ("wg-leads",)),
    (TeamKind.PROJECT_GROUP, "project-", ("project-group-leads",)),
)


def _duplicates(values: Iterable[str]) -> list[str]:
    counts = Counter(values)
    return sorted(value for value, count in counts.items() if count > 1)


def check_team_names(model: ExpandedModel) -> Diagnostics:
    for team in model.snapshot.teams:
        if not _KEBAB_RE.match(team.name):
            yield Diagnostic.fatal(
                DiagnosticKind.INVALID_TEAM_NAME,
                team.name,
                f"team name `{team.name}` can only be alphanumeric with hyphens",
            )


def check_name_prefixes(model: ExpandedModel) -> Diagnostics:
    for team in model.snapshot.teams:
        for kind, prefix, exceptions in _NAME_PREFIXES:
            if team.name in exceptions:
                continue
            if team.kind is kind and not team.name.startswith(prefix):
                yield Diagnostic.fatal(
                    DiagnosticKind.NAME_PREFIX,
                    team.name,
                    f"{kind.label} `{team.name}`'s name doesn't start with `{prefix}`",
                )
            elif team.kind is not kind and team.name.startswith(prefix):
                yield Diagnostic.fatal(
                    DiagnosticKind.NAME_PREFIX,
                    team.name,
                    f"{team.kind.label} `{team.name}` seems like a {kind.label} "
                    f"(since it has the `{prefix}` prefix)",
                )


def check_project_group_parents(model: ExpandedModel) -> Diagnostics:
    for team in model.teams:
        if team.kind is TeamKind.PROJECT_GROUP and team.subteam_of is None:
            yield Diagnostic.fatal(
                DiagnosticKind.PROJECT_GROUP_WITHOUT_PARENT,
                team.name,
                f"the project group `{team.name}` doesn't have a parent team",
            )


def check_unique_names(model: ExpandedModel) -> Diagnostics:
    snapshot = model.snapshot
    all_teams = (*snapshot.teams, *snapshot.archived_teams)
    for name in _duplicates(team.name for team in all_teams):
        yield Diagnostic.fatal(
            DiagnosticKind.DUPLICATE_TEAM, name, f"team `{name}` is defined more than once"
        )
    for name in _duplicates(person.github for person in snapshot.people):
        yield Diagnostic.fatal(
            DiagnosticKind.DUPLICATE_PERSON, name, f"person `{name}` is defined more than once"
        )
    for github_id in _duplicates(str(person.github_id) for person in snapshot.people):
        yield Diagnostic.fatal(
            DiagnosticKind.DUPLICATE_PERSON,
            github_id,
            f"GitHub id {github_id} is used by more than one person",
        )
    for slug in _duplicates(repo.slug for repo in snapshot.all_repos):
        yield Diagnostic.fatal(
            DiagnosticKind.DUPLICATE_REPO, slug, f"the repo {slug} is duplicated"
        )
    addresses = (
        mailing_list.address.lower()
        for team in snapshot.teams
        for mailing_list in team.mailing_lists
    )
    for address in _duplicates(addresses):
        yield Diagnostic.fatal(
            DiagnosticKind.DUPLICATE_LIST,
            address,
            f"mailing list `{address}` is defined more than once",
        )
    group_names = (group.name for team in snapshot.teams for group in team.chat_groups)
    for name in _duplicates(group_names):
        yield Diagnostic.fatal(
            DiagnosticKind.DUPLICATE_CHAT_GROUP,
            name,
            f"chat group `{name}` is defined more than once",
        )


def check_github_teams(model: ExpandedModel) -> Diagnostics:
    allowed = model.snapshot.policy.allowed_github_orgs
    owners: dict[tuple[str, str], str] = {}
    for team in model.teams:
        for org, name in team.github_team_names():
            if org not in allowed:
                yield Diagnostic.fatal(
                    DiagnosticKind.ORG_NOT_ALLOWED,
                    team.name,
                    f"GitHub organization `{org}` isn't allowed (in team `{team.name}`)",
                )
            other = owners.setdefault((org, name), team.name)
            if other != team.name:
                yield Diagnostic.fatal(
                    DiagnosticKind.DUPLICATE_GITHUB_TEAM,
                    f"{org}/{name}",
                    f"GitHub team `{org}/{name}` is defined for both the `{team.name}` "
                    f"and `{other}` teams",
                )


def check_team_leads(model: ExpandedModel) -> Diagnostics:
    for team in model.teams:
        members = model.members(team.name)
        for lead in team.people.leads:
            if lead not in members:
                yield Diagnostic.fatal(
                    DiagnosticKind.LEAD_NOT_MEMBER,
                    team.name,
                    f"`{lead}` leads team `{team.name}`, but is not a member of it",
                )


def check_merge_bot_grants(model: ExpandedModel) -> Diagnostics:
    subjects: list[tuple[str, PermissionGrants]] = [
        (f"user `{person.github}`", person.permissions) for person in model.snapshot.people
    ]
    for team in model.teams:
        subjects.append((f"team `{team.name}`", team.permissions))
        subjects.append((f"leads of team `{team.name}`", team.leads_permissions))
    for subject, grants in subjects:
        for repo in grants.conflicts():
            yield Diagnostic.fatal(
                DiagnosticKind.MERGE_BOT_CONFLICT,
                subject,
                f"{subject} has both review and try merge-bot rights on `{repo}`; "
                "review already implies try",
            )


def check_duplicate_permissions(model: ExpandedModel) -> Diagnostics:
    available = model.snapshot.policy.permissions.available()
    for team in model.teams:
        for member in sorted(model.members(team.name)):
            person = model.person(member)
            if person is None:
                continue
            for permission in available:
                if team.permissions.has(permission) and person.permissions.has_directly(
                    permission
                ):
                    yield Diagnostic.advisory(
                        DiagnosticKind.DUPLICATE_PERMISSION,
                        member,
                        f"user `{member}` has the permission `{permission}` both explicitly "
                        f"and through the `{team.name}` team",
                    )


def check_list_addresses(model: ExpandedModel) -> Diagnostics:
    allowed = model.snapshot.policy.allowed_list_domains
    for team in model.teams:
        for mailing_list in team.mailing_lists:
            address = mailing_list.address
            match = _LIST_ADDRESS_RE.match(address)
            if match is None:
                yield Diagnostic.fatal(
                    DiagnosticKind.INVALID_LIST_ADDRESS,
                    address,
                    f"invalid list address: `{address}`",
                )
            elif match.group(1) not in allowed:
                yield Diagnostic.fatal(
                    DiagnosticKind.LIST_DOMAIN_NOT_ALLOWED,
                    address,
                    f"list address on a domain we don't own: `{address}`",
                )


def check_people_emails(model: ExpandedModel) -> Diagnostics:
    for person in model.snapshot.people:
        email = person.email
        if email.kind is EmailKind.PLAINTEXT and "@" not in (email.value or ""):
            yield Diagnostic.fatal(
                DiagnosticKind.INVALID_EMAIL,
                person.github,
                f"invalid email address of `{person.github}`: {email.value}",
            )


def check_list_member_emails(model: ExpandedModel) -> Diagnostics:
    for team in model.teams:
        if not team.mailing_lists:
            continue
        for member in sorted(model.members(team.name)):
            person = model.person(member)
            if person is not None and person.email.kind is EmailKind.ABSENT:
                yield Diagnostic.fatal(
                    DiagnosticKind.LIST_MEMBER_WITHOUT_EMAIL,
                    member,
                    f"person `{member}` is a member of a mailing list but has no email address",
                )


def check_chat_member_ids(model: ExpandedModel) -> Diagnostics:
    for group in model.chat_groups():
        for member in group.members:
            if member.chat_id is None:
                yield Diagnostic.fatal(
                    DiagnosticKind.CHAT_MEMBER_WITHOUT_ID,
                    member.github or group.name,
                    f"person `{member.github}` in '{group.team}' is a member of the chat "
                    f"group `{group.name}` but has no chat id",
                )


def check_chat_exclusions(model: ExpandedModel) -> Diagnostics:
    for group in model.chat_groups():
        for excluded in group.excluded_not_included:
            yield Diagnostic.advisory(
                DiagnosticKind.EXCLUSION_NOT_INCLUDED,
                group.name,
                f"'{excluded}' was specifically excluded from the chat group "
                f"'{group.name}' but they were already not included",
            )


def check_alumni(model: ExpandedModel) -> Diagnostics:
    for team in (*model.snapshot.teams, *model.snapshot.archived_teams):
        members = set(team.people.member_names)
        for alumnus in team.people.alumni_names:
            if alumnus in members:
                yield Diagnostic.fatal(
                    DiagnosticKind.MEMBER_ALSO_ALUMNUS,
                    team.name,
                    f"person `{alumnus}` is listed as both a member and an alumnus "
                    f"of team `{team.name}`",
                )


def check_archived_teams(model: ExpandedModel) -> Diagnostics:
    for team in model.snapshot.archived_teams:
        if team.people.members:
            yield Diagnostic.fatal(
                DiagnosticKind.ARCHIVED_TEAM_HAS_MEMBERS,
                team.name,
                f"archived team '{team.name}' must not have current members; "
                "please move members to that team's alumni",
            )


def check_member_roles(model: ExpandedModel) -> Diagnostics:
    descriptions: dict[str, str] = {}
    for team in (*model.snapshot.teams, *model.snapshot.archived_teams):
        yield from _check_team_roles(team, descriptions)


def _check_team_roles(team: Team, descriptions: dict[str, str]) -> Diagnostics:
    role_ids: set[str] = set()
    for role in team.roles:
        if not _KEBAB_RE.match(role.id):
            yield Diagnostic.fatal(
                DiagnosticKind.INVALID_ROLE,
                team.name,
                f"role id {role.id!r} must be alphanumeric with hyphens",
            )
        if descriptions.setdefault(role.id, role.description) != role.description:
            yield Diagnostic.fatal(
                DiagnosticKind.INVALID_ROLE,
                team.name,
                f"role '{role.id}' has inconsistent description between different teams",
            )
        if role.id in role_ids:
            yield Diagnostic.fatal(
                DiagnosticKind.INVALID_ROLE,
                team.name,
                f"role '{role.id}' is duplicated in team '{team.name}'",
            )
        role_ids.add(role.id)

    for member in team.people.members:
        for role in member.roles:
            if role not in role_ids:
                yield Diagnostic.fatal(
                    DiagnosticKind.INVALID_ROLE,
                    team.name,
                    f"person '{member.github}' in team '{team.name}' has unrecognized "
                    f"role '{role}'",
                )


def check_repos(model: ExpandedModel) -> Diagnostics:
    allowed_orgs = model.snapshot.policy.allowed_github_orgs
    configured = model.configured_github_teams()
    for repo in model.snapshot.all_repos:
        if repo.org not in allowed_orgs:
            yield Diagnostic.fatal(
                DiagnosticKind.ORG_NOT_ALLOWED,
                repo.slug,
                f"the repo '{repo.name}' is in an invalid org '{repo.org}'",
            )
        for team, _permission in repo.access.teams:
            if (repo.org, team) not in configured:
                yield Diagnostic.fatal(
                    DiagnosticKind.UNCONFIGURED_GITHUB_TEAM,
                    repo.slug,
                    f"access for {repo.slug} is invalid: '{team}' is not configured as "
                    f"a GitHub team for the '{repo.org}' org",
                )
        for person, permission in repo.access.individuals:
            yield Diagnostic.advisory(
                DiagnosticKind.INDIVIDUAL_REPO_ACCESS,
                repo.slug,
                f"{repo.slug} grants `{permission}` to `{person}` individually; "
                "prefer team access",
            )


def check_branch_protections(model: ExpandedModel) -> Diagnostics:
    configured = model.configured_github_teams()
    for repo in model.snapshot.repos:
        for protection in repo.branch_protections:
            subject = f"{repo.slug}:{protection.pattern}"
            problems: list[str] = []
            if not protection.pattern.strip():
                problems.append("has an empty branch pattern")
            approvals = protection.required_approvals
            if approvals is not None and not 0 <= approvals <= MAX_REQUIRED_APPROVALS:
                problems.append(
                    f"requires {approvals} approvals, expected 0 to {MAX_REQUIRED_APPROVALS}"
                )
            if protection.ci_checks is not None:
                if not protection.ci_checks:
                    problems.append("declares an empty `ci-checks` list")
                elif any(not check.strip() for check in protection.ci_checks):
                    problems.append("has a blank entry in `ci-checks`")
            problems.extend(
                f"mentions the '{team}' GitHub team, which is not configured for "
                f"the '{repo.org}' org"
                for team in protection.allowed_merge_teams
                if (repo.org, team) not in configured
            )
            if repo.uses_merge_bot:
                if approvals is not None:
                    problems.append("uses `required-approvals` but the repo uses the merge bot")
                if protection.allowed_merge_teams:
                    problems.append("uses `allowed-merge-teams` but the repo uses the merge bot")
            for problem in problems:
                yield Diagnostic.fatal(
                    DiagnosticKind.INVALID_BRANCH_PROTECTION,
                    subject,
                    f"repo '{repo.slug}' branch protection for {protection.pattern!r} {problem}",
                )


def check_unreferenced_people(model: ExpandedModel) -> Diagnostics:
    snapshot = model.snapshot
    referenced: set[str] = set()
    for members in model.memberships.values():
        referenced.update(members)
    for team in (*snapshot.teams, *snapshot.archived_teams):
        referenced.update(team.people.member_names)
        referenced.update(team.people.alumni_names)
        referenced.update(team.people.leads)
        for mailing_list in team.mailing_lists:
            referenced.update(mailing_list.extra_people)
        for group in team.chat_groups:
            referenced.update(group.extra_people)
    for repo in snapshot.all_repos:
        referenced.update(person for person, _ in repo.access.individuals)

    for person in snapshot.people:
        if person.github in referenced or not person.permissions.is_empty:
            continue
        yield Diagnostic.advisory(
            DiagnosticKind.UNREFERENCED_PERSON,
            person.github,
            f"person `{person.github}` is not referenced by any team, list, chat group "
            "or repo and has no permissions",
        )
