"""Run several providers independently, one worker each."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor, wait
from logging import getLogger
from typing import TYPE_CHECKING

from .report import ProviderReport, RunError, RunStatus, SyncReport

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence
    from concurrent.futures import Future

    from teamsync.domain.expansion import ExpandedModel
    from teamsync.domain.ports.providers import ProviderAdapter

    from .engine import ReconciliationEngine

log = getLogger(__name__)


def select_providers(
    adapters: Sequence[ProviderAdapter],
    only: Collection[str] | None,
) -> list[ProviderAdapter]:
    if not only:
        return list(adapters)
    known = {adapter.name for adapter in adapters}
    unknown = sorted(set(only) - known)
    if unknown:
        raise ValueError(f"unknown provider(s): {', '.join(unknown)}")
    return [adapter for adapter in adapters if adapter.name in only]


def synchronize(
    adapters: Sequence[ProviderAdapter],
    model: ExpandedModel,
    *,
    engine: ReconciliationEngine,
    only: Collection[str] | None = None,
    timeout: float | None = None,
    cancel: threading.Event | None = None,
) -> SyncReport:
    """Reconcile every selected provider and collect one report per provider.

    A provider failure never prevents its siblings from running. When
    ``timeout`` elapses or ``cancel`` is set, workers stop dispatching new
    actions; calls already in flight are allowed to finish.
    """

    selected = select_providers(adapters, only)
    if not selected:
        return SyncReport(())
    cancel = cancel if cancel is not None else threading.Event()

    with ThreadPoolExecutor(
        max_workers=len(selected), thread_name_prefix="teamsync-provider"
    ) as pool:
        futures: dict[str, Future[ProviderReport]] = {
            adapter.name: pool.submit(engine.run, adapter, model, cancel=cancel)
            for adapter in selected
        }
        _done, pending = wait(futures.values(), timeout=timeout)
        if pending:
            log.warning(
                "Timed out after %ss; cancelling %d provider run(s)", timeout, len(pending)
            )
            cancel.set()
            wait(pending)

    reports = [_collect(name, future, engine) for name, future in futures.items()]
    return SyncReport(tuple(reports))


def _collect(
    name: str,
    future: Future[ProviderReport],
    engine: ReconciliationEngine,
) -> ProviderReport:
    exc = future.exception()
    if exc is None:
        return future.result()
    log.error("%s: provider run crashed", name, exc_info=exc)
    return ProviderReport(
        provider=name,
        mode=engine.strategy.mode,
        status=RunStatus.FAILED,
        errors=(RunError(error_type=type(exc).__name__, message=str(exc)),),
    )
