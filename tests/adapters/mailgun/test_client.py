from __future__ import annotations

import base64

import httpx
import pytest

from teamsync.adapters.mailgun import MailgunClient
from teamsync.config import MailgunConfig
from teamsync.domain.errors import TransientProviderError, UnauthorizedError
from tests.support.http import mock_resilience

BASE_URL = "https://api.mailgun.test/v3"


def _client(handler: object) -> MailgunClient:
    resilience = mock_resilience("mailgun", handler, base_url=BASE_URL)  # type: ignore[arg-type]
    return MailgunClient(
        config=MailgunConfig(api_token="key-123", encryption_key="k" * 32, resilience=resilience)
    )


def _route(index: int) -> dict[str, object]:
    return {
        "id": f"r{index}",
        "priority": 0,
        "expression": f'match_recipient("^l{index}@example\\.org$")',
        "actions": [f'forward("m{index}@example.org")'],
        "description": "managed by an automatic script on github",
        "created_at": "Tue, 01 Oct 2024 10:00:00 GMT",
    }


def test_list_routes_follows_skip_pagination() -> None:
    requests: list[httpx.Request] = []
    pages = {0: [_route(0), _route(1)], 2: [_route(2)]}

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        skip = int(request.url.params["skip"])
        return httpx.Response(200, json={"items": pages[skip], "total_count": 3})

    routes = _client(handler).list_routes()

    assert [route.id for route in routes] == ["r0", "r1", "r2"]
    assert [request.url.params["skip"] for request in requests] == ["0", "2"]
    expected = base64.b64encode(b"api:key-123").decode()
    assert requests[0].headers["Authorization"] == f"Basic {expected}"
    assert requests[0].url.path == "/v3/routes"


def test_create_route_sends_one_form_field_per_action() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"message": "Route has been created"})

    _client(handler).create_route(
        priority=1,
        description="managed",
        expression='match_recipient("x")',
        actions=['forward("a@x.org")', 'forward("b@x.org")'],
    )

    (request,) = captured
    form = httpx.QueryParams(request.content.decode())
    assert request.method == "POST"
    assert form["priority"] == "1"
    assert form.get_list("action") == ['forward("a@x.org")', 'forward("b@x.org")']


def test_update_and_delete_address_the_route_id() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={})

    client = _client(handler)
    client.update_route("r1", priority=0, actions=['forward("a@x.org")'])
    client.delete_route("r1")

    assert [(r.method, r.url.path) for r in captured] == [
        ("PUT", "/v3/routes/r1"),
        ("DELETE", "/v3/routes/r1"),
    ]


def test_errors_are_classified() -> None:
    def unauthorized(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="Forbidden")

    def throttled(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, headers={"Retry-After": "2"}, json={"message": "slow down"})

    with pytest.raises(UnauthorizedError):
        _client(unauthorized).list_routes()
    with pytest.raises(TransientProviderError) as exc:
        _client(throttled).delete_route("r1")
    assert exc.value.retry_after == 2.0
