from __future__ import annotations

import pytest

from teamsync.domain.errors import RejectedActionError, TransientProviderError
from teamsync.domain.reconciliation import BackoffPolicy


def test_delays_grow_exponentially_up_to_the_cap() -> None:
    policy = BackoffPolicy(base_delay=1.0, multiplier=2.0, max_delay=5.0)

    assert [policy.delay_for(attempt) for attempt in range(1, 5)] == [1.0, 2.0, 4.0, 5.0]


def test_retry_after_raises_the_delay_but_not_past_the_cap() -> None:
    policy = BackoffPolicy(base_delay=1.0, max_delay=10.0)

    assert policy.delay_for(1, retry_after=3.0) == 3.0
    assert policy.delay_for(1, retry_after=60.0) == 10.0


def test_call_gives_up_after_max_attempts() -> None:
    policy = BackoffPolicy(max_attempts=3)
    sleeps: list[float] = []
    calls: list[int] = []

    def operation() -> None:
        calls.append(1)
        raise TransientProviderError("busy")

    with pytest.raises(TransientProviderError):
        policy.call(operation, describe="op", sleep=sleeps.append)

    assert len(calls) == 3
    assert len(sleeps) == 2


def test_call_does_not_retry_other_errors() -> None:
    policy = BackoffPolicy()
    calls: list[int] = []

    def operation() -> None:
        calls.append(1)
        raise RejectedActionError("no")

    with pytest.raises(RejectedActionError):
        policy.call(operation, describe="op", sleep=lambda _s: None)

    assert calls == [1]
