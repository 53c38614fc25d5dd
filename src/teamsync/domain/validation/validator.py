"""Run the named validation checks over an expanded model."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from teamsync.domain.errors import CycleError, DanglingReferenceError, ProviderError
from teamsync.domain.validation import checks
from teamsync.domain.validation.diagnostics import (
    Diagnostic,
    DiagnosticKind,
    Severity,
    ValidationReport,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Collection, Iterable

    from teamsync.domain.expansion import ExpandedModel
    from teamsync.domain.ports.identity import IdentityOracle

log = getLogger(__name__)

IDENTITY_CHECK = "identities"


@dataclass(frozen=True, slots=True)
class Check:
    name: str
    run: Callable[[ExpandedModel], Iterable[Diagnostic]]


CHECKS: tuple[Check, ...] = (
    Check("team_names", checks.check_team_names),
    Check("name_prefixes", checks.check_name_prefixes),
    Check("project_group_parents", checks.check_project_group_parents),
    Check("unique_names", checks.check_unique_names),
    Check("github_teams", checks.check_github_teams),
    Check("team_leads", checks.check_team_leads),
    Check("merge_bot_grants", checks.check_merge_bot_grants),
    Check("duplicate_permissions", checks.check_duplicate_permissions),
    Check("list_addresses", checks.check_list_addresses),
    Check("people_emails", checks.check_people_emails),
    Check("list_member_emails", checks.check_list_member_emails),
    Check("chat_member_ids", checks.check_chat_member_ids),
    Check("chat_exclusions", checks.check_chat_exclusions),
    Check("alumni", checks.check_alumni),
    Check("archived_teams", checks.check_archived_teams),
    Check("member_roles", checks.check_member_roles),
    Check("repos", checks.check_repos),
    Check("branch_protections", checks.check_branch_protections),
    Check("unreferenced_people", checks.check_unreferenced_people),
)


def check_names() -> tuple[str, ...]:
    return (*(check.name for check in CHECKS), IDENTITY_CHECK)


def validate(
    model: ExpandedModel,
    *,
    identity_oracle: IdentityOracle | None = None,
    strict: bool = False,
    skip: Collection[str] = (),
) -> ValidationReport:
    """Run every check not named in ``skip`` and collect the findings.

    The identity oracle is consulted when present. A missing oracle or a
    failing lookup is fatal in ``strict`` mode and advisory otherwise.
    """

    known = set(check_names())
    for name in sorted(set(skip) - known):
        log.warning("Unknown check in skip list: %s", name)

    diagnostics: list[Diagnostic] = []
    skipped: list[str] = []
    for check in CHECKS:
        if check.name in skip:
            log.warning("Skipped check: %s", check.name)
            skipped.append(check.name)
            continue
        diagnostics.extend(check.run(model))

    if IDENTITY_CHECK in skip:
        log.warning("Skipped check: %s", IDENTITY_CHECK)
        skipped.append(IDENTITY_CHECK)
    else:
        diagnostics.extend(check_identities(model, identity_oracle, strict=strict))

    report = ValidationReport(diagnostics=_dedupe(diagnostics), skipped=tuple(skipped))
    for diagnostic in report.fatal:
        log.error("Validation error: %s", diagnostic.message)
    for diagnostic in report.advisories:
        log.info("Validation advisory: %s", diagnostic.message)
    return report


def check_identities(
    model: ExpandedModel,
    oracle: IdentityOracle | None,
    *,
    strict: bool,
) -> list[Diagnostic]:
    severity = Severity.FATAL if strict else Severity.ADVISORY
    if oracle is None:
        log.warning("Couldn't confirm platform identities; no identity oracle is configured")
        return [
            Diagnostic(
                severity=severity,
                kind=DiagnosticKind.IDENTITY_UNVERIFIED,
                message="platform identities were not verified: no identity oracle configured",
                subject="people",
            )
        ]

    found: list[Diagnostic] = []
    for person in model.snapshot.people:
        try:
            exists = oracle.identity_exists(person.github_id)
        except ProviderError as exc:
            log.warning("Identity lookup failed: %s", exc)
            found.append(
                Diagnostic(
                    severity=severity,
                    kind=DiagnosticKind.IDENTITY_UNVERIFIED,
                    message=f"couldn't verify platform identities: {exc}",
                    subject="people",
                )
            )
            break
        if not exists:
            found.append(
                Diagnostic.fatal(
                    DiagnosticKind.IDENTITY_NOT_FOUND,
                    person.github,
                    f"user `{person.github}` has GitHub id {person.github_id}, "
                    "which does not exist",
                )
            )
    return found


def _dedupe(diagnostics: Iterable[Diagnostic]) -> tuple[Diagnostic, ...]:
    seen: set[Diagnostic] = set()
    unique: list[Diagnostic] = []
    for diagnostic in diagnostics:
        if diagnostic not in seen:
            seen.add(diagnostic)
            unique.append(diagnostic)
    return tuple(unique)


def structural_report(error: CycleError | DanglingReferenceError) -> ValidationReport:
    """Report an expansion failure as a single fatal finding."""

    if isinstance(error, CycleError):
        diagnostic = Diagnostic.fatal(DiagnosticKind.TEAM_CYCLE, error.team, str(error))
    else:
        diagnostic = Diagnostic.fatal(DiagnosticKind.DANGLING_REFERENCE, error.name, str(error))
    log.error("Validation error: %s", diagnostic.message)
    return ValidationReport(diagnostics=(diagnostic,))
