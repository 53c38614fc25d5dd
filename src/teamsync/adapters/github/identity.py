"""Identity oracle backed by GitHub's ``/user/{id}`` endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from teamsync.domain.ports import IdentityOracle

    from .client import GitHubClient


@dataclass(slots=True)
class GitHubIdentityOracle:
    client: GitHubClient

    def identity_exists(self, external_id: int) -> bool:
        return self.client.user_exists(external_id)


if TYPE_CHECKING:
    _oracle_check: type[IdentityOracle] = GitHubIdentityOracle
