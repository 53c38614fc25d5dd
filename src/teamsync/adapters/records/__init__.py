"""Public interface for the TOML record loader."""

from __future__ import annotations

from .loader import TomlRecordSource
from .schema import ConfigRecord, PersonRecord, RepoRecord, TeamRecord
from .translator import to_grants, to_person, to_policy, to_repo, to_team

__all__ = [
    "ConfigRecord",
    "PersonRecord",
    "RepoRecord",
    "TeamRecord",
    "TomlRecordSource",
    "to_grants",
    "to_person",
    "to_policy",
    "to_repo",
    "to_team",
]
