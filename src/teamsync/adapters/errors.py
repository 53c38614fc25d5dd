"""Translate HTTP failures into the provider error taxonomy."""

from __future__ import annotations

from contextlib import contextmanager
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from teamsync.domain.errors import (
    MalformedResponseError,
    ProviderError,
    RejectedActionError,
    TransientProviderError,
    UnauthorizedError,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from pydantic import TypeAdapter

log = getLogger(__name__)

UNAUTHORIZED_STATUSES = frozenset({401, 403})
TRANSIENT_STATUSES = frozenset({408, 429})


def error_for_response(response: httpx.Response, *, provider: str) -> ProviderError | None:
    """Return the error matching an unsuccessful response, ``None`` for 2xx/3xx."""

    status = response.status_code
    if status < 400:
        return None
    message = f"{provider}: {response.request.method} {response.request.url.path} -> {status}"
    detail = _error_detail(response)
    if detail:
        message = f"{message}: {detail}"
    if status in UNAUTHORIZED_STATUSES:
        return UnauthorizedError(message)
    if status in TRANSIENT_STATUSES or status >= 500:
        return TransientProviderError(message, retry_after=_retry_after(response))
    return RejectedActionError(message)


def ensure_success(response: httpx.Response, *, provider: str) -> httpx.Response:
    error = error_for_response(response, provider=provider)
    if error is not None:
        raise error
    return response


def parse_response[T](response: httpx.Response, adapter: TypeAdapter[T], *, provider: str) -> T:
    """Validate a successful response body with ``adapter``."""

    ensure_success(response, provider=provider)
    try:
        payload = response.json()
    except ValueError as exc:
        raise MalformedResponseError(f"{provider}: response body is not JSON") from exc
    try:
        return adapter.validate_python(payload)
    except ValidationError as exc:
        log.debug(f"{provider}: rejected payload {payload!r}")
        raise MalformedResponseError(f"{provider}: unexpected response payload: {exc}") from exc


@contextmanager
def transport_errors(provider: str) -> Iterator[None]:
    """Map httpx transport exceptions raised inside the block to provider errors."""

    try:
        yield
    except httpx.TimeoutException as exc:
        raise TransientProviderError(f"{provider}: request timed out") from exc
    except httpx.TransportError as exc:
        raise TransientProviderError(f"{provider}: transport error: {exc}") from exc
    except httpx.DecodingError as exc:
        raise MalformedResponseError(f"{provider}: undecodable response: {exc}") from exc


def _retry_after(response: httpx.Response) -> float | None:
    raw = response.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return max(float(raw), 0.0)
    except ValueError:
        return None


def _error_detail(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200] or None
    if isinstance(payload, dict):
        for key in ("message", "msg", "error"):
            value = payload.get(key)
            if isinstance(value, str):
                return value
    return None
