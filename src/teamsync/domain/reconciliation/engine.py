"""Orchestrator for one provider's reconciliation run.

The engine always computes the plan the same way; an execution strategy
decides whether actions are only reported (preview) or dispatched to the
provider (commit). Provider polymorphism lives behind ``ProviderAdapter``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from teamsync.domain.errors import ProviderError

from .plan import build_plan
from .report import (
    ActionOutcome,
    OutcomeStatus,
    ProviderReport,
    RunError,
    RunMode,
    RunStatus,
)
from .retry import BackoffPolicy

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable, Mapping

    from teamsync.domain.expansion import ExpandedModel
    from teamsync.domain.ports.providers import ProviderAdapter

    from .contracts import Action, ActionId, EntityKey, EntityState
    from .plan import ActionPlan

log = getLogger(__name__)


@dataclass(slots=True, kw_only=True)
class Execution:
    outcomes: list[ActionOutcome] = field(default_factory=list["ActionOutcome"])
    errors: list[RunError] = field(default_factory=list["RunError"])
    aborted: bool = False
    cancelled: bool = False


class ExecutionStrategy(Protocol):
    mode: RunMode

    def execute(
        self,
        plan: ActionPlan,
        apply: Callable[[Action], None],
        *,
        cancel: threading.Event | None,
    ) -> Execution: ...


class PreviewStrategy:
    """Report every action as planned without touching the provider."""

    mode = RunMode.PREVIEW

    def execute(
        self,
        plan: ActionPlan,
        apply: Callable[[Action], None],  # noqa: ARG002
        *,
        cancel: threading.Event | None,  # noqa: ARG002
    ) -> Execution:
        return Execution(
            outcomes=[ActionOutcome(action=a, status=OutcomeStatus.PLANNED) for a in plan]
        )


class CommitStrategy:
    """Dispatch actions in plan order.

    An action whose dependency failed or was skipped is skipped. Credential
    and response-format failures abort the remaining actions, as does any
    exception that is not a ``ProviderError``; cancellation
    stops dispatching but never interrupts an action already in flight.
    """

    mode = RunMode.COMMIT

    def execute(
        self,
        plan: ActionPlan,
        apply: Callable[[Action], None],
        *,
        cancel: threading.Event | None,
    ) -> Execution:
        execution = Execution()
        unsuccessful: set[ActionId] = set()
        for action in plan:
            if execution.aborted or execution.cancelled:
                execution.outcomes.append(_skipped(action, "run stopped before dispatch"))
                continue
            if cancel is not None and cancel.is_set():
                log.warning("%s: cancelled, not dispatching remaining actions", plan.provider)
                execution.cancelled = True
                execution.outcomes.append(_skipped(action, "cancelled"))
                continue

            blocked = [dep for dep in action.depends_on if dep in unsuccessful]
            if blocked:
                unsuccessful.add(action.id)
                kind, entity_type, _key = blocked[0]
                execution.outcomes.append(
                    _skipped(action, f"depends on a failed {kind} of {entity_type}")
                )
                continue

            try:
                apply(action)
            except Exception as exc:  # noqa: BLE001
                unsuccessful.add(action.id)
                if isinstance(exc, ProviderError):
                    log.error(  # noqa: TRY400
                        "%s: %s failed: %s", plan.provider, action.describe(), exc
                    )
                else:
                    log.exception("%s: %s crashed", plan.provider, action.describe())
                execution.errors.append(
                    RunError(
                        error_type=type(exc).__name__,
                        message=str(exc),
                        entity_type=action.entity_type,
                        key=action.key,
                    )
                )
                execution.outcomes.append(
                    ActionOutcome(action=action, status=OutcomeStatus.FAILED, detail=str(exc))
                )
                # unexpected errors leave the provider in an unknown state
                if not isinstance(exc, ProviderError) or exc.fatal_for_provider:
                    execution.aborted = True
                continue

            log.info("%s: applied %s", plan.provider, action.describe())
            execution.outcomes.append(ActionOutcome(action=action, status=OutcomeStatus.APPLIED))
        return execution


def _skipped(action: Action, reason: str) -> ActionOutcome:
    return ActionOutcome(action=action, status=OutcomeStatus.SKIPPED, detail=reason)


@dataclass(slots=True)
class ReconciliationEngine:
    """Fetch, diff and execute one provider under a given strategy."""

    strategy: ExecutionStrategy
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)
    sleep: Callable[[float], None] = time.sleep

    def plan(self, adapter: ProviderAdapter, model: ExpandedModel) -> ActionPlan:
        """Compute the ordered plan; provider calls are retried on transient errors.

        Each entity type's desired state is computed before its observed state
        is fetched, in declared order.
        """

        desired: dict[str, Mapping[EntityKey, EntityState]] = {}
        observed: dict[str, Mapping[EntityKey, EntityState]] = {}
        for spec in adapter.entity_types:
            desired[spec.name] = self.backoff.call(
                lambda spec=spec: adapter.desired_state(model, spec),
                describe=f"{adapter.name}: project {spec.name}",
                sleep=self.sleep,
            )
            observed[spec.name] = self.backoff.call(
                lambda spec=spec: adapter.fetch_observed(spec),
                describe=f"{adapter.name}: fetch {spec.name}",
                sleep=self.sleep,
            )
        return build_plan(adapter.name, adapter.entity_types, desired, observed)

    def run(
        self,
        adapter: ProviderAdapter,
        model: ExpandedModel,
        *,
        cancel: threading.Event | None = None,
    ) -> ProviderReport:
        mode = self.strategy.mode
        if cancel is not None and cancel.is_set():
            return ProviderReport(provider=adapter.name, mode=mode, status=RunStatus.CANCELLED)

        log.info("%s: computing plan (%s)", adapter.name, mode)
        try:
            plan = self.plan(adapter, model)
        except ProviderError as exc:
            log.error("%s: could not fetch observed state: %s", adapter.name, exc)  # noqa: TRY400
            return ProviderReport(
                provider=adapter.name,
                mode=mode,
                status=RunStatus.FAILED,
                errors=(RunError(error_type=type(exc).__name__, message=str(exc)),),
            )

        for advisory in plan.advisories:
            log.warning("%s: %s", adapter.name, advisory.describe())

        def apply(action: Action) -> None:
            self.backoff.call(
                lambda: adapter.apply(action),
                describe=f"{adapter.name}: {action.describe()}",
                sleep=self.sleep,
            )

        execution = self.strategy.execute(plan, apply, cancel=cancel)
        report = ProviderReport(
            provider=adapter.name,
            mode=mode,
            status=_status(execution),
            plan=plan,
            outcomes=tuple(execution.outcomes),
            errors=tuple(execution.errors),
        )
        log.info("%s: %s", adapter.name, report.status)
        return report


def _status(execution: Execution) -> RunStatus:
    if execution.aborted:
        return RunStatus.FAILED
    if execution.cancelled:
        return RunStatus.CANCELLED
    if any(
        o.status in {OutcomeStatus.FAILED, OutcomeStatus.SKIPPED} for o in execution.outcomes
    ):
        return RunStatus.PARTIAL
    return RunStatus.SUCCEEDED
