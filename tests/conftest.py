from __future__ import annotations

import textwrap
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

EMAIL_KEY = "0123456789abcdef0123456789abcdef"

CONFIG_TOML = """
allowed-mailing-lists-domains = ["example.org"]
allowed-github-orgs = ["acme"]
permissions-bors-repos = ["rust"]
permissions-bools = ["perf", "crater"]
"""


@pytest.fixture
def email_key() -> str:
    return EMAIL_KEY


@pytest.fixture
def write_record(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a dedented TOML file below ``tmp_path``."""

    def write(relative: str, content: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip(), encoding="utf-8")
        return path

    return write


@pytest.fixture
def records_dir(tmp_path: Path, write_record: Callable[[str, str], Path]) -> Path:
    """A small but complete record tree."""

    write_record("config.toml", CONFIG_TOML)
    write_record(
        "people/alice.toml",
        """
        name = "Alice"
        github = "alice"
        github-id = 1
        zulip-id = 101
        email = "alice@example.org"

        [permissions]
        perf = true
        """,
    )
    write_record(
        "people/bob.toml",
        """
        name = "Bob"
        github = "bob"
        github-id = 2
        zulip-id = 102
        email = "bob@example.org"
        """,
    )
    write_record(
        "people/carol.toml",
        """
        name = "Carol"
        github = "carol"
        github-id = 3
        email = false
        """,
    )
    write_record(
        "teams/compiler.toml",
        """
        name = "compiler"

        [people]
        leads = ["alice"]
        members = ["alice", { github = "bob", roles = ["reviewer"] }]
        alumni = ["carol"]

        [permissions]
        bors.rust.review = true

        [[github]]
        orgs = ["acme"]

        [[roles]]
        id = "reviewer"
        description = "Reviewer"

        [[lists]]
        address = "compiler@example.org"

        [[zulip-groups]]
        name = "T-compiler"
        """,
    )
    write_record(
        "teams/archive/old-team.toml",
        """
        name = "old-team"

        [people]
        leads = []
        members = []
        alumni = ["carol"]
        """,
    )
    write_record(
        "repos/acme/rustc.toml",
        """
        org = "acme"
        name = "rustc"
        description = "The compiler"
        bots = ["bors"]

        [access.teams]
        compiler = "write"

        [[branch-protections]]
        pattern = "main"
        ci-checks = ["CI"]
        """,
    )
    return tmp_path
