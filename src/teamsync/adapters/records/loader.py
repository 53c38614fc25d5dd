"""Load the TOML record tree into a domain snapshot."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import BaseModel, ValidationError

from teamsync.domain.errors import RecordError, UnknownPermissionError
from teamsync.domain.model import Snapshot

from .schema import ConfigRecord, PersonRecord, RepoRecord, TeamRecord
from .translator import to_person, to_policy, to_repo, to_team

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

    from teamsync.domain.model import PermissionCatalog, Repository, Team

log = getLogger(__name__)

CONFIG_FILE = "config.toml"
ARCHIVE_DIR = "archive"


@dataclass(slots=True)
class TomlRecordSource:
    """Record tree laid out as::

        config.toml
        people/<github>.toml
        teams/<name>.toml
        teams/archive/<name>.toml
        repos/<org>/<repo>.toml
        repos/archive/<org>/<repo>.toml
    """

    root: Path

    def load(self) -> Snapshot:
        config = _read(self.root / CONFIG_FILE, ConfigRecord)
        policy = to_policy(config)
        catalog = policy.permissions

        people = tuple(
            self._translate(path, PersonRecord, lambda r: to_person(r, catalog))
            for path in _toml_files(self.root / "people")
        )
        teams = self._load_teams(self.root / "teams", catalog)
        archived_teams = self._load_teams(self.root / "teams" / ARCHIVE_DIR, catalog)
        repos = self._load_repos(self.root / "repos", skip=ARCHIVE_DIR)
        archived_repos = self._load_repos(self.root / "repos" / ARCHIVE_DIR)

        log.info(
            f"Loaded {len(people)} people, {len(teams)} teams "
            f"({len(archived_teams)} archived) and {len(repos)} repos "
            f"({len(archived_repos)} archived) from {self.root}"
        )
        return Snapshot(
            people=people,
            teams=teams,
            archived_teams=archived_teams,
            repos=repos,
            archived_repos=archived_repos,
            policy=policy,
        )

    def _load_teams(self, directory: Path, catalog: PermissionCatalog) -> tuple[Team, ...]:
        return tuple(
            self._translate(path, TeamRecord, lambda r: to_team(r, catalog))
            for path in _toml_files(directory)
        )

    def _load_repos(self, directory: Path, *, skip: str | None = None) -> tuple[Repository, ...]:
        if not directory.is_dir():
            return ()
        repos: list[Repository] = []
        for org_dir in sorted(p for p in directory.iterdir() if p.is_dir()):
            if org_dir.name == skip:
                continue
            for path in _toml_files(org_dir):
                repo = self._translate(path, RepoRecord, to_repo)
                _check_repo_location(repo, path)
                repos.append(repo)
        return tuple(repos)

    @staticmethod
    def _translate[R: BaseModel, T](
        path: Path,
        schema: type[R],
        translate: Callable[[R], T],
    ) -> T:
        record = _read(path, schema)
        try:
            return translate(record)
        except UnknownPermissionError as exc:
            exc.add_note(f"in {path}")
            raise


def _read[R: BaseModel](path: Path, schema: type[R]) -> R:
    try:
        with path.open("rb") as handle:
            payload = tomllib.load(handle)
    except FileNotFoundError as exc:
        raise RecordError("file not found", path=str(path)) from exc
    except tomllib.TOMLDecodeError as exc:
        raise RecordError(f"invalid TOML: {exc}", path=str(path)) from exc
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        raise RecordError(_describe(exc), path=str(path)) from exc


def _toml_files(directory: Path) -> Iterator[Path]:
    if not directory.is_dir():
        return
    yield from sorted(p for p in directory.iterdir() if p.is_file() and p.suffix == ".toml")


def _check_repo_location(repo: Repository, path: Path) -> None:
    org = path.parent.name
    if repo.org != org:
        raise RecordError(
            f"repo '{repo.name}' is located in the '{org}' org directory but its org is "
            f"'{repo.org}'",
            path=str(path),
        )
    if repo.name != path.stem:
        raise RecordError(
            f"repo '{repo.name}' is located in file '{path.name}', please ensure that the "
            "name matches",
            path=str(path),
        )


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
        for error in exc.errors()
    )
