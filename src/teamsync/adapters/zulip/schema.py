"""Pydantic models describing the Zulip user group API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ZulipBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class UserGroupPayload(ZulipBaseModel):
    id: int
    name: str
    description: str = ""
    members: list[int] = Field(default_factory=list)
    is_system_group: bool = False


class UserGroupsResponse(ZulipBaseModel):
    result: str
    user_groups: list[UserGroupPayload]
