"""Turn mailing lists into Mailgun routes.

Mailgun caps the actions of a single route at 4000 bytes. Large lists are
split into several routes sharing the same recipient expression, told apart
by their priority (0, 1, 2...).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from teamsync.domain.projections import MailingListView

ACTIONS_SIZE_LIMIT_BYTES = 4000

_RECIPIENT_PREFIX = 'match_recipient("'
_FORWARD_PREFIX = 'forward("'
_SUFFIX = '")'


@dataclass(frozen=True, slots=True)
class Route:
    pattern: str
    priority: int
    members: tuple[str, ...]

    @property
    def expression(self) -> str:
        return f"{_RECIPIENT_PREFIX}{self.pattern}{_SUFFIX}"

    @property
    def actions(self) -> tuple[str, ...]:
        return tuple(forward_action(member) for member in self.members)


def mangle_address(address: str) -> str:
    """Recipient regex for ``address`` that also accepts ``+alias`` suffixes.

    >>> mangle_address("list-name@example.com")
    '^list-name(?:\\\\+.+)?@example\\\\.com$'
    """

    escaped = address.replace(".", "\\.")
    user, at, domain = escaped.partition("@")
    if not at:
        raise ValueError(f"the address `{address}` doesn't have any '@'")
    return f"^{user}(?:\\+.+)?@{domain}$"


def forward_action(member: str) -> str:
    return f"{_FORWARD_PREFIX}{member}{_SUFFIX}"


def partition(lists: Iterable[MailingListView]) -> list[Route]:
    routes: list[Route] = []
    for mailing_list in lists:
        pattern = mangle_address(mailing_list.address)
        chunk: list[str] = []
        size = 0
        priority = 0
        for member in mailing_list.members:
            action_size = len(forward_action(member).encode())
            if chunk and size + action_size > ACTIONS_SIZE_LIMIT_BYTES:
                routes.append(Route(pattern=pattern, priority=priority, members=tuple(chunk)))
                priority += 1
                chunk, size = [], 0
            chunk.append(member)
            size += action_size
        routes.append(Route(pattern=pattern, priority=priority, members=tuple(chunk)))
    return routes


def recipient_pattern(expression: str) -> str | None:
    return _unwrap(expression, _RECIPIENT_PREFIX)


def forwarded_address(action: str) -> str | None:
    return _unwrap(action, _FORWARD_PREFIX)


def _unwrap(value: str, prefix: str) -> str | None:
    if not (value.startswith(prefix) and value.endswith(_SUFFIX)):
        return None
    return value[len(prefix) : -len(_SUFFIX)]
