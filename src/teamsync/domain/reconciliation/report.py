"""Structured results of reconciliation runs."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from .contracts import ActionKind, format_key

if TYPE_CHECKING:
    from .contracts import Action, Advisory, EntityKey
    from .plan import ActionPlan


class RunMode(StrEnum):
    PREVIEW = "preview"
    COMMIT = "commit"


class RunStatus(StrEnum):
    SUCCEEDED = "succeeded"
    PARTIAL = "partial"
    FAILED = "failed"
    CANCELLED = "cancelled"


class OutcomeStatus(StrEnum):
    APPLIED = "applied"
    FAILED = "failed"
    SKIPPED = "skipped"
    PLANNED = "planned"


@dataclass(frozen=True, slots=True, kw_only=True)
class ActionOutcome:
    action: Action
    status: OutcomeStatus
    detail: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class RunError:
    """One entry of the ordered error list of a provider run."""

    error_type: str
    message: str
    entity_type: str | None = None
    key: EntityKey | None = None

    def __str__(self) -> str:
        if self.entity_type is None or self.key is None:
            return f"{self.error_type}: {self.message}"
        return f"{self.entity_type} {format_key(self.key)}: {self.error_type}: {self.message}"


@dataclass(slots=True)
class Totals:
    created: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: int = 0
    failed: int = 0

    def record(self, outcome: ActionOutcome) -> None:
        if outcome.status is OutcomeStatus.SKIPPED:
            self.skipped += 1
        elif outcome.status is OutcomeStatus.FAILED:
            self.failed += 1
        elif outcome.action.kind is ActionKind.CREATE:
            self.created += 1
        elif outcome.action.kind is ActionKind.UPDATE:
            self.updated += 1
        else:
            self.deleted += 1

    def as_dict(self) -> dict[str, int]:
        return {
            "created": self.created,
            "updated": self.updated,
            "deleted": self.deleted,
            "skipped": self.skipped,
            "failed": self.failed,
        }


@dataclass(frozen=True, slots=True, kw_only=True)
class ProviderReport:
    """Result of reconciling one provider.

    In preview mode created/updated/deleted count planned actions; in commit
    mode they count applied ones.
    """

    provider: str
    mode: RunMode
    status: RunStatus
    plan: ActionPlan | None = None
    outcomes: tuple[ActionOutcome, ...] = ()
    errors: tuple[RunError, ...] = ()

    @property
    def advisories(self) -> tuple[Advisory, ...]:
        return self.plan.advisories if self.plan is not None else ()

    @property
    def totals(self) -> Totals:
        totals = Totals()
        for outcome in self.outcomes:
            totals.record(outcome)
        return totals

    def counts_by_type(self) -> dict[str, Totals]:
        counts: dict[str, Totals] = {}
        if self.plan is not None:
            counts = {name: Totals() for name in self.plan.entity_types}
        for outcome in self.outcomes:
            counts.setdefault(outcome.action.entity_type, Totals()).record(outcome)
        return counts

    @property
    def ok(self) -> bool:
        return self.status is RunStatus.SUCCEEDED

    def to_dict(self) -> dict[str, object]:
        return {
            "provider": self.provider,
            "mode": self.mode.value,
            "status": self.status.value,
            "totals": self.totals.as_dict(),
            "by_entity_type": {
                name: totals.as_dict() for name, totals in self.counts_by_type().items()
            },
            "outcomes": [
                {
                    "action": outcome.action.describe(),
                    "status": outcome.status.value,
                    "detail": outcome.detail,
                }
                for outcome in self.outcomes
            ],
            "advisories": [advisory.describe() for advisory in self.advisories],
            "errors": [str(error) for error in self.errors],
        }

    def render(self) -> str:
        totals = self.totals
        lines = [
            f"{self.provider} ({self.mode}): {self.status} - "
            f"{totals.created} created, {totals.updated} updated, {totals.deleted} deleted, "
            f"{totals.skipped} skipped, {totals.failed} failed"
        ]
        if self.plan is not None and self.mode is RunMode.PREVIEW:
            lines.append(self.plan.render())
        lines.extend(f"  error: {error}" for error in self.errors)
        return "\n".join(lines)


@dataclass(frozen=True, slots=True)
class SyncReport:
    providers: tuple[ProviderReport, ...] = field(default=())

    @property
    def has_failures(self) -> bool:
        return any(report.status is not RunStatus.SUCCEEDED for report in self.providers)

    def get(self, provider: str) -> ProviderReport | None:
        return next((r for r in self.providers if r.provider == provider), None)

    def to_json(self) -> str:
        return json.dumps([report.to_dict() for report in self.providers], indent=2, sort_keys=True)

    def render(self) -> str:
        return "\n".join(report.render() for report in self.providers)
