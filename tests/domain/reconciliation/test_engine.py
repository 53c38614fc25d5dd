from __future__ import annotations

import threading

import pytest

from teamsync.domain.errors import (
    RejectedActionError,
    TransientProviderError,
    UnauthorizedError,
)
from teamsync.domain.expansion import ExpandedModel, expand
from teamsync.domain.reconciliation import (
    ActionKind,
    BackoffPolicy,
    CommitStrategy,
    OutcomeStatus,
    PreviewStrategy,
    ReconciliationEngine,
    RunMode,
    RunStatus,
)
from tests.support.builders import make_snapshot
from tests.support.providers import FakeProvider, states


@pytest.fixture
def model() -> ExpandedModel:
    return expand(make_snapshot())


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider(
        desired={
            "group": states({("a",): {"description": "A"}, ("b",): {"description": "B2"}}),
            "membership": states({("a", "alice"): {"role": "member"}}),
        },
        observed={
            "group": states({("b",): {"description": "B1"}, ("c",): {"description": "C"}}),
            "membership": states({("c", "bob"): {"role": "member"}}),
        },
    )


def _engine(*, commit: bool, sleeps: list[float] | None = None) -> ReconciliationEngine:
    recorded = sleeps if sleeps is not None else []
    return ReconciliationEngine(
        strategy=CommitStrategy() if commit else PreviewStrategy(),
        backoff=BackoffPolicy(max_attempts=3, base_delay=1.0, max_delay=5.0),
        sleep=recorded.append,
    )


def test_preview_reports_the_plan_without_applying(
    provider: FakeProvider, model: ExpandedModel
) -> None:
    report = _engine(commit=False).run(provider, model)

    assert report.mode is RunMode.PREVIEW
    assert report.status is RunStatus.SUCCEEDED
    assert provider.applied == []
    assert {outcome.status for outcome in report.outcomes} == {OutcomeStatus.PLANNED}
    assert report.totals.as_dict() == {
        "created": 2,
        "updated": 1,
        "deleted": 2,
        "skipped": 0,
        "failed": 0,
    }


def test_preview_and_commit_compute_the_same_plan(
    provider: FakeProvider, model: ExpandedModel
) -> None:
    preview = _engine(commit=False).run(provider, model)
    commit = _engine(commit=True).run(provider, model)

    assert preview.plan is not None
    assert commit.plan is not None
    assert preview.plan.to_json() == commit.plan.to_json()


def test_repeated_previews_are_byte_identical(
    provider: FakeProvider, model: ExpandedModel
) -> None:
    first = _engine(commit=False).run(provider, model)
    second = _engine(commit=False).run(provider, model)

    assert first.render() == second.render()


def test_commit_applies_every_action_in_plan_order(
    provider: FakeProvider, model: ExpandedModel
) -> None:
    report = _engine(commit=True).run(provider, model)

    assert report.status is RunStatus.SUCCEEDED
    assert [action.describe() for action in provider.applied] == [
        "create group (a)",
        "create membership (a, alice)",
        "update group (b)",
        "delete membership (c, bob)",
        "delete group (c)",
    ]


def test_transient_failures_are_retried_with_backoff(
    provider: FakeProvider, model: ExpandedModel
) -> None:
    provider.failures["create group (a)"] = [
        TransientProviderError("busy"),
        TransientProviderError("busy", retry_after=4.0),
    ]
    sleeps: list[float] = []

    report = _engine(commit=True, sleeps=sleeps).run(provider, model)

    assert report.status is RunStatus.SUCCEEDED
    assert sleeps == [1.0, 4.0]
    assert len(provider.applied) == 5


def test_exhausted_retries_fail_the_action_and_skip_dependants(
    provider: FakeProvider, model: ExpandedModel
) -> None:
    provider.failures["create group (a)"] = [TransientProviderError("busy")] * 3

    report = _engine(commit=True).run(provider, model)

    statuses = {o.action.describe(): o.status for o in report.outcomes}
    assert report.status is RunStatus.PARTIAL
    assert statuses["create group (a)"] is OutcomeStatus.FAILED
    assert statuses["create membership (a, alice)"] is OutcomeStatus.SKIPPED
    assert statuses["update group (b)"] is OutcomeStatus.APPLIED
    assert [error.error_type for error in report.errors] == ["TransientProviderError"]


def test_rejected_action_does_not_stop_siblings(
    provider: FakeProvider, model: ExpandedModel
) -> None:
    provider.failures["update group (b)"] = [RejectedActionError("nope")]

    report = _engine(commit=True).run(provider, model)

    assert report.status is RunStatus.PARTIAL
    assert report.totals.failed == 1
    assert report.totals.deleted == 2
    assert [error.key for error in report.errors] == [("b",)]


def test_failed_child_delete_blocks_the_container_delete(
    provider: FakeProvider, model: ExpandedModel
) -> None:
    provider.failures["delete membership (c, bob)"] = [RejectedActionError("nope")]

    report = _engine(commit=True).run(provider, model)

    statuses = {o.action.describe(): o.status for o in report.outcomes}
    assert statuses["delete group (c)"] is OutcomeStatus.SKIPPED


def test_unauthorized_aborts_the_remaining_actions(
    provider: FakeProvider, model: ExpandedModel
) -> None:
    provider.failures["create group (a)"] = [UnauthorizedError("bad token")]

    report = _engine(commit=True).run(provider, model)

    assert report.status is RunStatus.FAILED
    assert provider.applied == []
    assert report.totals.failed == 1
    assert report.totals.skipped == 4


def test_unexpected_apply_error_keeps_earlier_outcomes(
    provider: FakeProvider, model: ExpandedModel
) -> None:
    provider.failures["create membership (a, alice)"] = [KeyError("boom")]

    report = _engine(commit=True).run(provider, model)

    statuses = {o.action.describe(): o.status for o in report.outcomes}
    assert report.status is RunStatus.FAILED
    assert statuses["create group (a)"] is OutcomeStatus.APPLIED
    assert statuses["create membership (a, alice)"] is OutcomeStatus.FAILED
    assert report.totals.created == 1
    assert report.totals.failed == 1
    assert report.totals.skipped == 3
    assert [error.error_type for error in report.errors] == ["KeyError"]


def test_fetch_failure_fails_the_provider_run(
    provider: FakeProvider, model: ExpandedModel
) -> None:
    provider.fetch_failures = [UnauthorizedError("bad token")]

    report = _engine(commit=True).run(provider, model)

    assert report.status is RunStatus.FAILED
    assert report.plan is None
    assert [str(error) for error in report.errors] == ["UnauthorizedError: bad token"]


def test_transient_fetch_failures_are_retried(
    provider: FakeProvider, model: ExpandedModel
) -> None:
    provider.fetch_failures = [TransientProviderError("slow")]

    report = _engine(commit=False).run(provider, model)

    assert report.status is RunStatus.SUCCEEDED
    assert provider.fetches == 3


def test_cancellation_stops_dispatching_after_the_inflight_action(
    provider: FakeProvider, model: ExpandedModel
) -> None:
    cancel = threading.Event()
    provider.on_apply = lambda _action: cancel.set()

    report = _engine(commit=True).run(provider, model, cancel=cancel)

    assert report.status is RunStatus.CANCELLED
    assert len(provider.applied) == 1
    assert provider.applied[0].kind is ActionKind.CREATE
    assert report.totals.skipped == 4


def test_cancelled_before_start_fetches_nothing(
    provider: FakeProvider, model: ExpandedModel
) -> None:
    cancel = threading.Event()
    cancel.set()

    report = _engine(commit=True).run(provider, model, cancel=cancel)

    assert report.status is RunStatus.CANCELLED
    assert provider.fetches == 0


def test_report_serialises_counts_per_entity_type(
    provider: FakeProvider, model: ExpandedModel
) -> None:
    report = _engine(commit=True).run(provider, model)

    payload = report.to_dict()
    assert payload["status"] == "succeeded"
    assert payload["by_entity_type"] == {
        "group": {"created": 1, "updated": 1, "deleted": 1, "skipped": 0, "failed": 0},
        "membership": {"created": 1, "updated": 0, "deleted": 1, "skipped": 0, "failed": 0},
    }
