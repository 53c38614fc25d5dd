"""Application orchestration entry points."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from teamsync.adapters.github import GitHubClient, GitHubIdentityOracle, GitHubProvider
from teamsync.adapters.mailgun import MailgunClient, MailgunProvider
from teamsync.adapters.records import TomlRecordSource
from teamsync.adapters.zulip import ZulipClient, ZulipProvider
from teamsync.config import (
    get_github_config,
    get_mailgun_config,
    get_sync_config,
    get_zulip_config,
    optional_env_var,
)
from teamsync.domain.errors import CycleError, DanglingReferenceError
from teamsync.domain.expansion import expand
from teamsync.domain.reconciliation import (
    BackoffPolicy,
    CommitStrategy,
    PreviewStrategy,
    ReconciliationEngine,
    synchronize,
)
from teamsync.domain.validation import structural_report, validate

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable, Collection, Mapping

    from teamsync.config import SyncConfig
    from teamsync.domain.expansion import ExpandedModel
    from teamsync.domain.model import Snapshot
    from teamsync.domain.ports import IdentityOracle, ProviderAdapter, RecordSource
    from teamsync.domain.reconciliation import SyncReport
    from teamsync.domain.validation import ValidationReport

    type ProviderFactory = Callable[[Snapshot], ProviderAdapter]


log = getLogger(__name__)


def _github(snapshot: Snapshot) -> ProviderAdapter:
    return GitHubProvider(
        client=GitHubClient(config=get_github_config()),
        orgs=tuple(sorted(snapshot.policy.allowed_github_orgs)),
    )


def _mailgun(_snapshot: Snapshot) -> ProviderAdapter:
    config = get_mailgun_config()
    return MailgunProvider(
        client=MailgunClient(config=config), encryption_key=config.encryption_key
    )


def _zulip(_snapshot: Snapshot) -> ProviderAdapter:
    return ZulipProvider(client=ZulipClient(config=get_zulip_config()))


PROVIDER_FACTORIES: Mapping[str, ProviderFactory] = {
    "github": _github,
    "mailgun": _mailgun,
    "zulip": _zulip,
}


@dataclass(frozen=True, slots=True)
class CheckResult:
    snapshot: Snapshot
    model: ExpandedModel | None
    report: ValidationReport

    @property
    def ok(self) -> bool:
        return self.model is not None and not self.report.has_fatal


@dataclass(frozen=True, slots=True)
class SyncResult:
    check: CheckResult
    report: SyncReport | None = None

    @property
    def ok(self) -> bool:
        return self.report is not None and not self.report.has_failures


def load_snapshot(data_dir: str | Path, *, source: RecordSource | None = None) -> Snapshot:
    return (source or TomlRecordSource(Path(data_dir))).load()


def check_records(
    data_dir: str | Path,
    *,
    strict: bool = False,
    skip: Collection[str] = (),
    identity_oracle: IdentityOracle | None = None,
    source: RecordSource | None = None,
) -> CheckResult:
    """Load, expand and validate the records.

    Load failures (``RecordError``, ``UnknownPermissionError``) propagate;
    cycles and dangling references are reported as fatal diagnostics.
    """

    snapshot = load_snapshot(data_dir, source=source)
    try:
        model = expand(snapshot)
    except (CycleError, DanglingReferenceError) as exc:
        return CheckResult(snapshot=snapshot, model=None, report=structural_report(exc))
    report = validate(model, identity_oracle=identity_oracle, strict=strict, skip=skip)
    log.info(
        f"Validation finished: {len(report.fatal)} error(s), "
        f"{len(report.advisories)} advisory finding(s)"
    )
    return CheckResult(snapshot=snapshot, model=model, report=report)


def default_identity_oracle() -> IdentityOracle | None:
    """GitHub-backed oracle when a token is configured."""

    if optional_env_var("GITHUB_TOKEN") is None:
        return None
    return GitHubIdentityOracle(client=GitHubClient(config=get_github_config()))


def build_providers(
    snapshot: Snapshot,
    *,
    only: Collection[str] | None = None,
    factories: Mapping[str, ProviderFactory] = PROVIDER_FACTORIES,
) -> list[ProviderAdapter]:
    """Instantiate the selected providers; credentials are read only for those."""

    names = list(factories) if not only else sorted(set(only))
    unknown = [name for name in names if name not in factories]
    if unknown:
        raise ValueError(f"unknown provider(s): {', '.join(unknown)}")
    return [factories[name](snapshot) for name in names]


def build_engine(*, commit: bool, config: SyncConfig) -> ReconciliationEngine:
    return ReconciliationEngine(
        strategy=CommitStrategy() if commit else PreviewStrategy(),
        backoff=BackoffPolicy(
            max_attempts=config.max_attempts,
            base_delay=config.backoff_base_seconds,
            max_delay=config.backoff_max_seconds,
        ),
    )


def sync_providers(
    data_dir: str | Path,
    *,
    commit: bool = False,
    only: Collection[str] | None = None,
    timeout: float | None = None,
    source: RecordSource | None = None,
    factories: Mapping[str, ProviderFactory] = PROVIDER_FACTORIES,
    sync_config: SyncConfig | None = None,
    cancel: threading.Event | None = None,
) -> SyncResult:
    """Validate the records, then reconcile every selected provider.

    Nothing is fetched or applied when validation finds a fatal problem.
    """

    check = check_records(data_dir, source=source)
    if not check.ok or check.model is None:
        log.error("Validation failed; no provider will be synchronised")
        return SyncResult(check=check)

    config = sync_config or get_sync_config()
    providers = build_providers(check.snapshot, only=only, factories=factories)
    engine = build_engine(commit=commit, config=config)
    mode = "commit" if commit else "preview"
    log.info(f"Synchronising {', '.join(p.name for p in providers)} ({mode})")
    report = synchronize(
        providers,
        check.model,
        engine=engine,
        timeout=timeout if timeout is not None else config.provider_timeout_seconds,
        cancel=cancel,
    )
    return SyncResult(check=check, report=report)
