"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class TeamKind(StrEnum):
    TEAM = "team"
    WORKING_GROUP = "working-group"
    PROJECT_GROUP = "project-group"
    MARKER_TEAM = "marker-team"

    @property
    def label(self) -> str:
        return self.value.replace("-", " ")


class RepoPermission(StrEnum):
    """Access level of a team or person on a repository, lowest first."""

    TRIAGE = "triage"
    WRITE = "write"
    MAINTAIN = "maintain"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return list(RepoPermission).index(self)


class Bot(StrEnum):
    BORS = "bors"
    HIGHFIVE = "highfive"
    RUSTBOT = "rustbot"
    RUST_TIMER = "rust-timer"
    RFCBOT = "rfcbot"
    CRATERBOT = "craterbot"
    GLACIERBOT = "glacierbot"
    LOG_ANALYZER = "log-analyzer"
    RENOVATE = "renovate"


class MergeBotAccess(StrEnum):
    """Repo-scoped merge bot rights; ``review`` subsumes ``try``."""

    REVIEW = "review"
    TRY = "try"


class EmailKind(StrEnum):
    ABSENT = "absent"
    DISABLED = "disabled"
    PLAINTEXT = "plaintext"
    ENCRYPTED = "encrypted"
