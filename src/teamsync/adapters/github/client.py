"""HTTP client for the GitHub REST API."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import TypeAdapter

from teamsync.adapters.errors import ensure_success, parse_response, transport_errors
from teamsync.adapters.http_resilience import ResilientClient

from .schema import RepoPayload, TeamPayload, TeamRepoPayload, UserPayload

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    import httpx

    from teamsync.config.http_resilience import ResilienceConfig
    from teamsync.config.providers import GitHubConfig

    from .schema import TeamPrivacy, TeamRole

log = getLogger(__name__)

PROVIDER = "github"
PAGE_SIZE = 100

_TEAMS = TypeAdapter(list[TeamPayload])
_USERS = TypeAdapter(list[UserPayload])
_REPOS = TypeAdapter(list[RepoPayload])
_TEAM_REPOS = TypeAdapter(list[TeamRepoPayload])

# Team memberships are listed per role; GitHub has no role field on members.
_ROLES: tuple[TeamRole, ...] = ("maintainer", "member")
# The REST API still names write access "push".
_PERMISSION_ALIASES = {"write": "push"}


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class GitHubClient:
    """Low-level client; every public method runs one short-lived session."""

    def __init__(
        self,
        *,
        config: GitHubConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        headers = {**(config.resilience.default_headers or {})}
        headers["Authorization"] = f"Bearer {config.token}"
        self._resilience = replace(config.resilience, default_headers=headers)
        self._client_factory = client_factory or _default_client_factory

    # reads

    def list_teams(self, org: str) -> list[TeamPayload]:
        return asyncio.run(self._paginate(f"orgs/{org}/teams", _TEAMS))

    def list_repos(self, org: str) -> list[RepoPayload]:
        return asyncio.run(self._paginate(f"orgs/{org}/repos", _REPOS, params={"type": "all"}))

    def org_owners(self, org: str) -> set[str]:
        users = asyncio.run(self._paginate(f"orgs/{org}/members", _USERS, params={"role": "admin"}))
        return {user.login for user in users}

    def team_members(
        self, teams: Iterable[tuple[str, str]]
    ) -> dict[tuple[str, str], dict[str, TeamRole]]:
        """Map each ``(org, slug)`` to ``{login: role}``."""

        return asyncio.run(self._team_members_async(tuple(teams)))

    def team_repos(
        self, teams: Iterable[tuple[str, str]]
    ) -> dict[tuple[str, str], list[TeamRepoPayload]]:
        return asyncio.run(self._team_repos_async(tuple(teams)))

    def user_exists(self, user_id: int) -> bool:
        return asyncio.run(self._user_exists_async(user_id))

    # writes

    def create_team(self, org: str, name: str, *, description: str, privacy: TeamPrivacy) -> None:
        log.info(f"Creating GitHub team {org}/{name}")
        asyncio.run(
            self._send_json(
                "POST",
                f"orgs/{org}/teams",
                {"name": name, "description": description, "privacy": privacy},
            )
        )

    def edit_team(self, org: str, slug: str, fields: dict[str, object]) -> None:
        log.info(f"Editing GitHub team {org}/{slug}: {sorted(fields)}")
        asyncio.run(self._send_json("PATCH", f"orgs/{org}/teams/{slug}", fields))

    def delete_team(self, org: str, slug: str) -> None:
        log.info(f"Deleting GitHub team {org}/{slug}")
        asyncio.run(self._delete(f"orgs/{org}/teams/{slug}"))

    def set_membership(self, org: str, slug: str, login: str, role: TeamRole) -> None:
        log.info(f"Setting {login} as {role} of GitHub team {org}/{slug}")
        asyncio.run(
            self._send_json("PUT", f"orgs/{org}/teams/{slug}/memberships/{login}", {"role": role})
        )

    def remove_membership(self, org: str, slug: str, login: str) -> None:
        log.info(f"Removing {login} from GitHub team {org}/{slug}")
        asyncio.run(self._delete(f"orgs/{org}/teams/{slug}/memberships/{login}"))

    def create_repo(self, org: str, name: str, *, description: str, homepage: str | None) -> None:
        log.info(f"Creating GitHub repository {org}/{name}")
        asyncio.run(
            self._send_json(
                "POST",
                f"orgs/{org}/repos",
                {
                    "name": name,
                    "description": description,
                    "homepage": homepage,
                    "auto_init": True,
                },
            )
        )

    def edit_repo(self, org: str, name: str, fields: dict[str, object]) -> None:
        log.info(f"Editing GitHub repository {org}/{name}: {sorted(fields)}")
        asyncio.run(self._send_json("PATCH", f"repos/{org}/{name}", fields))

    def set_team_repo_permission(self, org: str, slug: str, repo: str, permission: str) -> None:
        log.info(f"Granting {permission} on {org}/{repo} to GitHub team {org}/{slug}")
        asyncio.run(
            self._send_json(
                "PUT",
                f"orgs/{org}/teams/{slug}/repos/{org}/{repo}",
                {"permission": _PERMISSION_ALIASES.get(permission, permission)},
            )
        )

    def remove_team_repo(self, org: str, slug: str, repo: str) -> None:
        log.info(f"Removing GitHub team {org}/{slug} from {org}/{repo}")
        asyncio.run(self._delete(f"orgs/{org}/teams/{slug}/repos/{org}/{repo}"))

    # async internals

    async def _paginate[T](
        self,
        path: str,
        adapter: TypeAdapter[list[T]],
        *,
        params: dict[str, str] | None = None,
        client: ResilientClient | None = None,
    ) -> list[T]:
        if client is None:
            async with self._client_factory(self._resilience) as owned:
                return await self._paginate(path, adapter, params=params, client=owned)

        items: list[T] = []
        url: str | None = path
        query: dict[str, str | int] | None = {"per_page": PAGE_SIZE, **(params or {})}
        while url is not None:
            with transport_errors(PROVIDER):
                response = await client.get(url, params=query)
            items.extend(parse_response(response, adapter, provider=PROVIDER))
            url = _next_page(response)
            # the next link already carries the query string
            query = None
        return items

    async def _team_members_async(
        self, teams: tuple[tuple[str, str], ...]
    ) -> dict[tuple[str, str], dict[str, TeamRole]]:
        members: dict[tuple[str, str], dict[str, TeamRole]] = {}
        async with self._client_factory(self._resilience) as client:
            for org, slug in teams:
                roles: dict[str, TeamRole] = {}
                for role in _ROLES:
                    users = await self._paginate(
                        f"orgs/{org}/teams/{slug}/members",
                        _USERS,
                        params={"role": role},
                        client=client,
                    )
                    for user in users:
                        roles.setdefault(user.login, role)
                members[(org, slug)] = roles
        return members

    async def _team_repos_async(
        self, teams: tuple[tuple[str, str], ...]
    ) -> dict[tuple[str, str], list[TeamRepoPayload]]:
        repos: dict[tuple[str, str], list[TeamRepoPayload]] = {}
        async with self._client_factory(self._resilience) as client:
            for org, slug in teams:
                repos[(org, slug)] = await self._paginate(
                    f"orgs/{org}/teams/{slug}/repos", _TEAM_REPOS, client=client
                )
        return repos

    async def _user_exists_async(self, user_id: int) -> bool:
        async with self._client_factory(self._resilience) as client:
            with transport_errors(PROVIDER):
                response = await client.get(f"user/{user_id}")
        if response.status_code == 404:
            return False
        ensure_success(response, provider=PROVIDER)
        return True

    async def _send_json(self, method: str, path: str, body: dict[str, object]) -> None:
        async with self._client_factory(self._resilience) as client:
            with transport_errors(PROVIDER):
                response = await client.request(method, path, json=body)
        ensure_success(response, provider=PROVIDER)

    async def _delete(self, path: str) -> None:
        async with self._client_factory(self._resilience) as client:
            with transport_errors(PROVIDER):
                response = await client.delete(path)
        if response.status_code == 404:
            log.debug(f"{path} was already gone")
            return
        ensure_success(response, provider=PROVIDER)


def _next_page(response: httpx.Response) -> str | None:
    link = response.links.get("next")
    if link is None:
        return None
    return link.get("url")
