"""Provider-agnostic reconciliation: diff, order, preview or commit."""

from __future__ import annotations

from .contracts import (
    Action,
    ActionKind,
    Advisory,
    EntityKey,
    EntityState,
    EntityTypeSpec,
    FieldChange,
)
from .engine import CommitStrategy, ExecutionStrategy, PreviewStrategy, ReconciliationEngine
from .plan import ActionPlan, build_plan, diff_entity_type
from .report import (
    ActionOutcome,
    OutcomeStatus,
    ProviderReport,
    RunError,
    RunMode,
    RunStatus,
    SyncReport,
)
from .retry import BackoffPolicy
from .runner import synchronize

__all__ = [
    "Action",
    "ActionKind",
    "ActionOutcome",
    "ActionPlan",
    "Advisory",
    "BackoffPolicy",
    "CommitStrategy",
    "EntityKey",
    "EntityState",
    "EntityTypeSpec",
    "ExecutionStrategy",
    "FieldChange",
    "OutcomeStatus",
    "PreviewStrategy",
    "ProviderReport",
    "ReconciliationEngine",
    "RunError",
    "RunMode",
    "RunStatus",
    "SyncReport",
    "build_plan",
    "diff_entity_type",
    "synchronize",
]
