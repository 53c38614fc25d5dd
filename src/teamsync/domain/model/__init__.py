"""Public domain model surface."""

from __future__ import annotations

from teamsync.domain.model.enums import Bot, EmailKind, MergeBotAccess, RepoPermission, TeamKind
from teamsync.domain.model.people import Email, Person
from teamsync.domain.model.permissions import (
    FlagGrant,
    MergeBotGrant,
    Permission,
    PermissionCatalog,
    PermissionGrants,
)
from teamsync.domain.model.repos import BranchProtection, RepoAccess, Repository
from teamsync.domain.model.snapshot import OrgPolicy, Snapshot
from teamsync.domain.model.teams import (
    ChatGroup,
    GitHubIntegration,
    MailingList,
    MemberRole,
    Team,
    TeamMember,
    TeamPeople,
)

__all__ = [  # noqa: RUF022
    # enums
    "Bot",
    "EmailKind",
    "MergeBotAccess",
    "RepoPermission",
    "TeamKind",
    # permissions
    "FlagGrant",
    "MergeBotGrant",
    "Permission",
    "PermissionCatalog",
    "PermissionGrants",
    # people
    "Email",
    "Person",
    # teams
    "ChatGroup",
    "GitHubIntegration",
    "MailingList",
    "MemberRole",
    "Team",
    "TeamMember",
    "TeamPeople",
    # repos
    "BranchProtection",
    "RepoAccess",
    "Repository",
    # snapshot
    "OrgPolicy",
    "Snapshot",
]
