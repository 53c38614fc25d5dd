"""Repositories, their access grants and branch protections."""

from __future__ import annotations

from dataclasses import dataclass, field

from teamsync.domain.model.enums import Bot, RepoPermission


@dataclass(frozen=True, slots=True, kw_only=True)
class BranchProtection:
    pattern: str
    # None when the record does not declare any checks.
    ci_checks: tuple[str, ...] | None = None
    dismiss_stale_review: bool = False
    required_approvals: int | None = None
    pr_required: bool = True
    allowed_merge_teams: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class RepoAccess:
    # Mappings are stored as sorted pairs so the model stays hashable.
    teams: tuple[tuple[str, RepoPermission], ...] = ()
    individuals: tuple[tuple[str, RepoPermission], ...] = ()

    def team_permission(self, team: str) -> RepoPermission | None:
        return dict(self.teams).get(team)


@dataclass(frozen=True, slots=True, kw_only=True)
class Repository:
    org: str
    name: str
    description: str
    homepage: str | None = None
    bots: tuple[Bot, ...] = ()
    private_non_synced: bool = False
    access: RepoAccess = field(default_factory=RepoAccess)
    branch_protections: tuple[BranchProtection, ...] = ()

    @property
    def slug(self) -> str:
        return f"{self.org}/{self.name}"

    @property
    def uses_merge_bot(self) -> bool:
        return Bot.BORS in self.bots
