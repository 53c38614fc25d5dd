"""Validation findings.

Findings are values collected into a report; only the caller decides whether
a fatal finding aborts the run.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Severity(StrEnum):
    FATAL = "fatal"
    ADVISORY = "advisory"


class DiagnosticKind(StrEnum):
    """Stable machine-readable finding identifiers."""

    TEAM_CYCLE = "team-cycle"
    DANGLING_REFERENCE = "dangling-reference"
    UNCONFIGURED_GITHUB_TEAM = "unconfigured-github-team"
    DUPLICATE_TEAM = "duplicate-team"
    DUPLICATE_PERSON = "duplicate-person"
    DUPLICATE_REPO = "duplicate-repo"
    DUPLICATE_LIST = "duplicate-list"
    DUPLICATE_CHAT_GROUP = "duplicate-chat-group"
    DUPLICATE_GITHUB_TEAM = "duplicate-github-team"
    LEAD_NOT_MEMBER = "lead-not-member"
    MERGE_BOT_CONFLICT = "merge-bot-conflict"
    INVALID_LIST_ADDRESS = "invalid-list-address"
    LIST_DOMAIN_NOT_ALLOWED = "list-domain-not-allowed"
    INVALID_EMAIL = "invalid-email"
    INVALID_BRANCH_PROTECTION = "invalid-branch-protection"
    INVALID_TEAM_NAME = "invalid-team-name"
    NAME_PREFIX = "name-prefix"
    PROJECT_GROUP_WITHOUT_PARENT = "project-group-without-parent"
    ORG_NOT_ALLOWED = "org-not-allowed"
    MEMBER_ALSO_ALUMNUS = "member-also-alumnus"
    LIST_MEMBER_WITHOUT_EMAIL = "list-member-without-email"
    CHAT_MEMBER_WITHOUT_ID = "chat-member-without-id"
    ARCHIVED_TEAM_HAS_MEMBERS = "archived-team-has-members"
    INVALID_ROLE = "invalid-role"
    DUPLICATE_PERMISSION = "duplicate-permission"
    INDIVIDUAL_REPO_ACCESS = "individual-repo-access"
    EXCLUSION_NOT_INCLUDED = "exclusion-not-included"
    UNREFERENCED_PERSON = "unreferenced-person"
    IDENTITY_NOT_FOUND = "identity-not-found"
    IDENTITY_UNVERIFIED = "identity-unverified"


@dataclass(frozen=True, slots=True, kw_only=True)
class Diagnostic:
    severity: Severity
    kind: DiagnosticKind
    message: str
    subject: str

    @classmethod
    def fatal(cls, kind: DiagnosticKind, subject: str, message: str) -> Diagnostic:
        return cls(severity=Severity.FATAL, kind=kind, message=message, subject=subject)

    @classmethod
    def advisory(cls, kind: DiagnosticKind, subject: str, message: str) -> Diagnostic:
        return cls(severity=Severity.ADVISORY, kind=kind, message=message, subject=subject)

    @property
    def is_fatal(self) -> bool:
        return self.severity is Severity.FATAL

    def __str__(self) -> str:
        return f"{self.severity}[{self.kind}] {self.message}"


@dataclass(frozen=True, slots=True)
class ValidationReport:
    diagnostics: tuple[Diagnostic, ...] = ()
    skipped: tuple[str, ...] = ()

    @property
    def fatal(self) -> tuple[Diagnostic, ...]:
        return tuple(d for d in self.diagnostics if d.is_fatal)

    @property
    def advisories(self) -> tuple[Diagnostic, ...]:
        return tuple(d for d in self.diagnostics if not d.is_fatal)

    @property
    def has_fatal(self) -> bool:
        return any(d.is_fatal for d in self.diagnostics)

    def of_kind(self, kind: DiagnosticKind) -> tuple[Diagnostic, ...]:
        return tuple(d for d in self.diagnostics if d.kind is kind)
