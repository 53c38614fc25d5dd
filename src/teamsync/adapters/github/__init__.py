"""Public interface for the GitHub adapter."""

from __future__ import annotations

from .client import GitHubClient
from .identity import GitHubIdentityOracle
from .provider import (
    MANAGED_DESCRIPTION,
    REPO_TEAM_ACCESS,
    REPOSITORY,
    TEAM,
    TEAM_MEMBERSHIP,
    GitHubProvider,
    team_slug,
)

__all__ = [
    "MANAGED_DESCRIPTION",
    "REPOSITORY",
    "REPO_TEAM_ACCESS",
    "TEAM",
    "TEAM_MEMBERSHIP",
    "GitHubClient",
    "GitHubIdentityOracle",
    "GitHubProvider",
    "team_slug",
]
