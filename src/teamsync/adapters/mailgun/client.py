"""HTTP client for the Mailgun routes API."""

from __future__ import annotations

import asyncio
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import TypeAdapter

from teamsync.adapters.errors import ensure_success, parse_response, transport_errors
from teamsync.adapters.http_resilience import ResilientClient

from .schema import RoutePayload, RoutesResponse

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from teamsync.config.http_resilience import ResilienceConfig
    from teamsync.config.providers import MailgunConfig

log = getLogger(__name__)

PROVIDER = "mailgun"
PAGE_SIZE = 1000

_ROUTES = TypeAdapter(RoutesResponse)


class MailgunClient:
    def __init__(
        self,
        *,
        config: MailgunConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._resilience = config.resilience
        self._client_factory = client_factory or partial(
            ResilientClient, auth=httpx.BasicAuth("api", config.api_token)
        )

    def list_routes(self) -> list[RoutePayload]:
        return asyncio.run(self._list_routes_async())

    def create_route(
        self, *, priority: int, description: str, expression: str, actions: Sequence[str]
    ) -> None:
        log.info(f"Creating Mailgun route {expression} (priority {priority})")
        data = {
            "priority": str(priority),
            "description": description,
            "expression": expression,
            "action": list(actions),
        }
        asyncio.run(self._send("POST", "routes", data=data))

    def update_route(self, route_id: str, *, priority: int, actions: Sequence[str]) -> None:
        log.info(f"Updating Mailgun route {route_id} (priority {priority})")
        data = {"priority": str(priority), "action": list(actions)}
        asyncio.run(self._send("PUT", f"routes/{route_id}", data=data))

    def delete_route(self, route_id: str) -> None:
        log.info(f"Deleting Mailgun route {route_id}")
        asyncio.run(self._send("DELETE", f"routes/{route_id}"))

    async def _list_routes_async(self) -> list[RoutePayload]:
        routes: list[RoutePayload] = []
        async with self._client_factory(self._resilience) as client:
            while True:
                with transport_errors(PROVIDER):
                    response = await client.get(
                        "routes", params={"skip": len(routes), "limit": PAGE_SIZE}
                    )
                page = parse_response(response, _ROUTES, provider=PROVIDER)
                routes.extend(page.items)
                if not page.items or len(routes) >= page.total_count:
                    return routes

    async def _send(
        self,
        method: str,
        path: str,
        *,
        data: dict[str, str | list[str]] | None = None,
    ) -> None:
        async with self._client_factory(self._resilience) as client:
            with transport_errors(PROVIDER):
                response = await client.request(method, path, data=data)
        ensure_success(response, provider=PROVIDER)
