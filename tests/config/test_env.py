from __future__ import annotations

import pytest

from teamsync.config import (
    ConfigurationError,
    MissingConfigurationError,
    SyncConfig,
    default_data_dir,
    env_float,
    env_int,
    get_email_key,
    get_github_config,
    get_sync_config,
    get_zulip_config,
    require_env_vars,
)


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    assert require_env_vars(["EXAMPLE_VAR"]) == {"EXAMPLE_VAR": "value"}


def test_require_env_vars_names_every_missing_or_blank_var(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.delenv("MISSING_VAR", raising=False)
    monkeypatch.setenv("BLANK_VAR", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_VAR", "BLANK_VAR"])

    assert "BLANK_VAR, MISSING_VAR" in str(exc.value)


def test_numeric_readers_fall_back_to_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SOME_INT", raising=False)
    monkeypatch.setenv("SOME_FLOAT", "")

    assert env_int("SOME_INT", 7) == 7
    assert env_float("SOME_FLOAT", 1.5) == 1.5


def test_numeric_readers_reject_garbage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SOME_INT", "1.5")
    monkeypatch.setenv("SOME_FLOAT", "soon")

    with pytest.raises(ConfigurationError, match="SOME_INT must be an integer"):
        env_int("SOME_INT", 1)
    with pytest.raises(ConfigurationError, match="SOME_FLOAT must be a number"):
        env_float("SOME_FLOAT", 1.0)


def test_sync_config_reads_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEAMSYNC_MAX_ATTEMPTS", "2")
    monkeypatch.setenv("TEAMSYNC_PROVIDER_TIMEOUT", "60")
    monkeypatch.delenv("TEAMSYNC_BACKOFF_SECONDS", raising=False)
    monkeypatch.delenv("TEAMSYNC_BACKOFF_MAX_SECONDS", raising=False)

    config = get_sync_config()

    assert config.max_attempts == 2
    assert config.provider_timeout_seconds == 60.0
    assert config.backoff_base_seconds == SyncConfig().backoff_base_seconds


def test_github_config_carries_api_headers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_secret")

    config = get_github_config()

    assert config.token == "ghp_secret"
    assert config.resilience.base_url == "https://api.github.com"
    assert config.resilience.default_headers is not None
    assert config.resilience.default_headers["Accept"] == "application/vnd.github+json"


def test_zulip_base_url_can_be_overridden(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ZULIP_USERNAME", "bot@example.org")
    monkeypatch.setenv("ZULIP_API_TOKEN", "token")
    monkeypatch.setenv("ZULIP_BASE_URL", "https://chat.example.org/api/v1")

    assert get_zulip_config().resilience.base_url == "https://chat.example.org/api/v1"


def test_email_key_is_required(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("EMAIL_ENCRYPTION_KEY", raising=False)

    with pytest.raises(MissingConfigurationError, match="EMAIL_ENCRYPTION_KEY"):
        get_email_key()


def test_data_dir_defaults_to_cwd(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("TEAM_DATA_DIR", raising=False)
    assert default_data_dir() == "."

    monkeypatch.setenv("TEAM_DATA_DIR", "/srv/team")
    assert default_data_dir() == "/srv/team"
