from __future__ import annotations

import pytest

from teamsync.domain.email_encryption import encrypt
from teamsync.domain.errors import AuthenticationFailedError
from teamsync.domain.expansion import expand
from teamsync.domain.model import (
    Email,
    GitHubIntegration,
    MailingList,
    RepoAccess,
    RepoPermission,
    Repository,
)
from teamsync.domain.projections import (
    decrypted_mailing_lists,
    repo_team_grants,
    synced_repositories,
)
from tests.support.builders import make_person, make_snapshot, make_team


def test_mailing_lists_are_decrypted_for_providers(email_key: str) -> None:
    secret = encrypt("hidden@example.org", email_key)
    snapshot = make_snapshot(
        people=(make_person("alice", email=Email.encrypted(secret)), make_person("bob")),
        teams=[
            make_team(
                "core",
                members=["alice", "bob"],
                mailing_lists=(MailingList(address=encrypt("core@example.org", email_key)),),
            )
        ],
    )

    (view,) = decrypted_mailing_lists(expand(snapshot), email_key)

    assert view.address == "core@example.org"
    assert view.members == ("bob@example.org", "hidden@example.org")


def test_decryption_failure_is_never_swallowed(email_key: str) -> None:
    secret = encrypt("hidden@example.org", "x" * 32)
    snapshot = make_snapshot(
        people=(make_person("alice", email=Email.encrypted(secret)),),
        teams=[
            make_team(
                "core",
                members=["alice"],
                mailing_lists=(MailingList(address="core@example.org"),),
            )
        ],
    )

    with pytest.raises(AuthenticationFailedError):
        decrypted_mailing_lists(expand(snapshot), email_key)


def test_private_repos_are_not_synced() -> None:
    repos = (
        Repository(
            org="acme",
            name="public",
            description="",
            access=RepoAccess(teams=(("core", RepoPermission.MAINTAIN),)),
        ),
        Repository(org="acme", name="secret", description="", private_non_synced=True),
    )
    snapshot = make_snapshot(
        teams=[make_team("core", github=(GitHubIntegration(orgs=("acme",)),))],
        repos=repos,
    )
    model = expand(snapshot)

    assert [repo.name for repo in synced_repositories(model)] == ["public"]
    (grant,) = repo_team_grants(model)
    assert (grant.org, grant.repo, grant.team, grant.permission) == (
        "acme",
        "public",
        "core",
        RepoPermission.MAINTAIN,
    )
