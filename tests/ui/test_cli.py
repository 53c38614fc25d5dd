from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from teamsync.app import CheckResult, SyncResult
from teamsync.domain.expansion import expand
from teamsync.domain.reconciliation import ProviderReport, RunMode, RunStatus, SyncReport
from teamsync.domain.validation import ValidationReport
from teamsync.ui import cli
from tests.support.builders import make_snapshot

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


@pytest.fixture(autouse=True)
def no_identity_oracle(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "default_identity_oracle", lambda: None)


def _sync_result(status: RunStatus) -> SyncResult:
    snapshot = make_snapshot()
    check = CheckResult(snapshot=snapshot, model=expand(snapshot), report=ValidationReport())
    report = SyncReport(
        providers=(ProviderReport(provider="github", mode=RunMode.PREVIEW, status=status),)
    )
    return SyncResult(check=check, report=report)


def test_check_passes_on_valid_records(
    records_dir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert cli.main(["check", "--data-dir", str(records_dir)]) == cli.EXIT_OK

    assert "identity-unverified" in capsys.readouterr().out


def test_check_fails_on_fatal_diagnostics(
    records_dir: Path,
    write_record: Callable[[str, str], Path],
    capsys: pytest.CaptureFixture[str],
) -> None:
    write_record(
        "teams/infra.toml",
        """
        name = "infra"

        [people]
        leads = ["carol"]
        members = ["alice"]
        """,
    )

    assert cli.main(["check", "--data-dir", str(records_dir)]) == cli.EXIT_BAD_INPUT

    assert "lead-not-member" in capsys.readouterr().out


def test_strict_check_fails_without_identity_confirmation(records_dir: Path) -> None:
    argv = ["check", "--data-dir", str(records_dir), "--strict"]

    assert cli.main(argv) == cli.EXIT_BAD_INPUT
    assert cli.main([*argv, "--skip", "identities"]) == cli.EXIT_OK


def test_unreadable_records_are_bad_input(records_dir: Path) -> None:
    (records_dir / "people" / "bob.toml").write_text("name = ", encoding="utf-8")

    assert cli.main(["check", "--data-dir", str(records_dir)]) == cli.EXIT_BAD_INPUT


def test_sync_passes_arguments_through(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    captured: dict[str, object] = {}

    def fake_sync(data_dir: str, **kwargs: object) -> SyncResult:
        captured.update(kwargs, data_dir=data_dir)
        return _sync_result(RunStatus.SUCCEEDED)

    monkeypatch.setattr(cli, "sync_providers", fake_sync)

    code = cli.main(
        ["sync", "--data-dir", "records", "--commit", "--only", "zulip", "--timeout", "30"]
    )

    assert code == cli.EXIT_OK
    assert captured["data_dir"] == "records"
    assert captured["commit"] is True
    assert captured["only"] == ["zulip"]
    assert captured["timeout"] == 30.0
    assert "github (preview): succeeded" in capsys.readouterr().out


def test_sync_provider_failures_exit_distinctly(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        cli, "sync_providers", lambda *_args, **_kwargs: _sync_result(RunStatus.FAILED)
    )

    assert cli.main(["sync"]) == cli.EXIT_PROVIDER_FAILURE


def test_sync_refuses_invalid_records(
    records_dir: Path, write_record: Callable[[str, str], Path]
) -> None:
    write_record(
        "teams/infra.toml",
        """
        name = "infra"

        [people]
        leads = ["carol"]
        members = ["alice"]
        """,
    )

    assert cli.main(["sync", "--data-dir", str(records_dir)]) == cli.EXIT_BAD_INPUT


def test_unknown_provider_is_bad_input(records_dir: Path) -> None:
    argv = ["sync", "--data-dir", str(records_dir), "--only", "billing"]

    assert cli.main(argv) == cli.EXIT_BAD_INPUT


def test_usage_errors_exit_with_two() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["sync", "--timeout", "soon"])

    assert excinfo.value.code == 2


def test_email_round_trip(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], email_key: str
) -> None:
    monkeypatch.setenv("TEST_EMAIL_KEY", email_key)

    assert cli.main(["encrypt-email", "alice@example.org", "--key-env", "TEST_EMAIL_KEY"]) == 0
    token = capsys.readouterr().out.strip()
    assert token.startswith("encrypted+")

    assert cli.main(["decrypt-email", token, "--key-env", "TEST_EMAIL_KEY"]) == 0
    assert capsys.readouterr().out.strip() == "alice@example.org"


def test_missing_key_is_bad_input(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("EMAIL_ENCRYPTION_KEY", raising=False)

    assert cli.main(["encrypt-email", "alice@example.org"]) == cli.EXIT_BAD_INPUT


def test_wrong_key_is_bad_input(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], email_key: str
) -> None:
    monkeypatch.setenv("EMAIL_ENCRYPTION_KEY", email_key)
    cli.main(["encrypt-email", "alice@example.org"])
    token = capsys.readouterr().out.strip()
    monkeypatch.setenv("EMAIL_ENCRYPTION_KEY", "f" * 32)

    assert cli.main(["decrypt-email", token]) == cli.EXIT_BAD_INPUT
