"""Provider-neutral desired-state views derived from an expanded model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from teamsync.domain.email_encryption import try_decrypt

if TYPE_CHECKING:
    from teamsync.domain.email_encryption import KeyMaterial
    from teamsync.domain.expansion import ExpandedModel
    from teamsync.domain.model import RepoPermission, Repository


@dataclass(frozen=True, slots=True, kw_only=True)
class MailingListView:
    address: str
    members: tuple[str, ...]


@dataclass(frozen=True, slots=True, kw_only=True)
class RepoTeamGrant:
    org: str
    repo: str
    team: str
    permission: RepoPermission


def decrypted_mailing_lists(
    model: ExpandedModel,
    key: KeyMaterial,
) -> tuple[MailingListView, ...]:
    """Mailing lists with every address and member in plaintext.

    Decryption failures propagate; a list is never synced with a member
    silently dropped.
    """

    views: list[MailingListView] = []
    for expanded in model.mailing_lists():
        members = sorted({try_decrypt(email, key) for email in expanded.emails})
        views.append(
            MailingListView(address=try_decrypt(expanded.address, key), members=tuple(members))
        )
    return tuple(sorted(views, key=lambda view: view.address))


def synced_repositories(model: ExpandedModel) -> tuple[Repository, ...]:
    """Active repositories that are mirrored to the code host."""

    return tuple(
        sorted(
            (repo for repo in model.snapshot.repos if not repo.private_non_synced),
            key=lambda repo: (repo.org, repo.name),
        )
    )


def repo_team_grants(model: ExpandedModel) -> tuple[RepoTeamGrant, ...]:
    return tuple(
        RepoTeamGrant(org=repo.org, repo=repo.name, team=team, permission=permission)
        for repo in synced_repositories(model)
        for team, permission in sorted(repo.access.teams)
    )
