"""Pydantic models describing the GitHub REST payloads we read."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

TeamPrivacy = Literal["closed", "secret"]
TeamRole = Literal["member", "maintainer"]


class GitHubBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class UserPayload(GitHubBaseModel):
    id: int
    login: str


class TeamPayload(GitHubBaseModel):
    id: int
    name: str
    slug: str
    description: str | None = None
    privacy: TeamPrivacy | None = None


class RepoPayload(GitHubBaseModel):
    id: int
    name: str
    description: str | None = None
    homepage: str | None = None
    archived: bool = False


class TeamRepoPayload(GitHubBaseModel):
    name: str
    owner: UserPayload
    # "read" for pull access, otherwise one of triage/write/maintain/admin
    role_name: str
