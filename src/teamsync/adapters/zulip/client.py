"""HTTP client for the Zulip user group API."""

from __future__ import annotations

import asyncio
import json
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import TypeAdapter

from teamsync.adapters.errors import ensure_success, parse_response, transport_errors
from teamsync.adapters.http_resilience import ResilientClient

from .schema import UserGroupPayload, UserGroupsResponse

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from teamsync.config.http_resilience import ResilienceConfig
    from teamsync.config.providers import ZulipConfig

log = getLogger(__name__)

PROVIDER = "zulip"

_USER_GROUPS = TypeAdapter(UserGroupsResponse)


def _id_array(ids: Iterable[int]) -> str:
    return json.dumps(sorted(ids))


class ZulipClient:
    def __init__(
        self,
        *,
        config: ZulipConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._resilience = config.resilience
        self._client_factory = client_factory or partial(
            ResilientClient, auth=httpx.BasicAuth(config.username, config.api_token)
        )

    def list_user_groups(self) -> list[UserGroupPayload]:
        return asyncio.run(self._list_user_groups_async())

    def create_user_group(self, name: str, *, description: str, members: Iterable[int]) -> None:
        log.info(f"Creating Zulip user group {name!r}")
        data = {"name": name, "description": description, "members": _id_array(members)}
        asyncio.run(self._send("POST", "user_groups/create", data))

    def update_description(self, group_id: int, *, name: str, description: str) -> None:
        log.info(f"Updating description of Zulip user group {name!r} ({group_id})")
        data = {"name": name, "description": description}
        asyncio.run(self._send("PATCH", f"user_groups/{group_id}", data))

    def update_members(self, group_id: int, *, add: Iterable[int], remove: Iterable[int]) -> None:
        add, remove = sorted(add), sorted(remove)
        if not add and not remove:
            log.debug(f"Zulip user group {group_id} needs no member changes")
            return
        log.info(f"Updating Zulip user group {group_id}: adding {add}, removing {remove}")
        data = {"add": _id_array(add), "delete": _id_array(remove)}
        asyncio.run(self._send("POST", f"user_groups/{group_id}/members", data))

    async def _list_user_groups_async(self) -> list[UserGroupPayload]:
        async with self._client_factory(self._resilience) as client:
            with transport_errors(PROVIDER):
                response = await client.get("user_groups")
        return parse_response(response, _USER_GROUPS, provider=PROVIDER).user_groups

    async def _send(self, method: str, path: str, data: dict[str, str]) -> None:
        async with self._client_factory(self._resilience) as client:
            with transport_errors(PROVIDER):
                response = await client.request(method, path, data=data)
        ensure_success(response, provider=PROVIDER)
