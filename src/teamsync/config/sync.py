"""Reconciliation defaults."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, env_int, optional_env_var

DEFAULT_MAX_ATTEMPTS = 4
DEFAULT_BACKOFF_BASE_SECONDS = 0.5
DEFAULT_BACKOFF_MAX_SECONDS = 30.0
DEFAULT_PROVIDER_TIMEOUT_SECONDS = 15 * 60.0
DATA_DIR_ENV = "TEAM_DATA_DIR"


@dataclass(frozen=True, slots=True)
class SyncConfig:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff_base_seconds: float = DEFAULT_BACKOFF_BASE_SECONDS
    backoff_max_seconds: float = DEFAULT_BACKOFF_MAX_SECONDS
    provider_timeout_seconds: float | None = DEFAULT_PROVIDER_TIMEOUT_SECONDS


def get_sync_config() -> SyncConfig:
    return SyncConfig(
        max_attempts=env_int("TEAMSYNC_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS),
        backoff_base_seconds=env_float("TEAMSYNC_BACKOFF_SECONDS", DEFAULT_BACKOFF_BASE_SECONDS),
        backoff_max_seconds=env_float("TEAMSYNC_BACKOFF_MAX_SECONDS", DEFAULT_BACKOFF_MAX_SECONDS),
        provider_timeout_seconds=env_float(
            "TEAMSYNC_PROVIDER_TIMEOUT", DEFAULT_PROVIDER_TIMEOUT_SECONDS
        ),
    )


def default_data_dir() -> str:
    return optional_env_var(DATA_DIR_ENV) or "."
