"""Bounded exponential backoff for transient provider failures."""

from __future__ import annotations

import time
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from teamsync.domain.errors import TransientProviderError

if TYPE_CHECKING:
    from collections.abc import Callable

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BackoffPolicy:
    """Retry schedule applied by the engine to fetch and apply calls."""

    max_attempts: int = 4
    base_delay: float = 0.5
    multiplier: float = 2.0
    max_delay: float = 30.0

    def delay_for(self, attempt: int, *, retry_after: float | None = None) -> float:
        """Delay before retry number ``attempt`` (1-based)."""

        delay = self.base_delay * (self.multiplier ** (attempt - 1))
        if retry_after is not None:
            delay = max(delay, retry_after)
        return min(delay, self.max_delay)

    def call[T](
        self,
        operation: Callable[[], T],
        *,
        describe: str,
        sleep: Callable[[float], None] = time.sleep,
    ) -> T:
        """Run ``operation``, retrying transient failures.

        The last ``TransientProviderError`` propagates once attempts are
        exhausted; every other exception propagates immediately.
        """

        attempt = 1
        while True:
            try:
                return operation()
            except TransientProviderError as exc:
                if attempt >= self.max_attempts:
                    log.warning("Giving up on %s after %d attempts: %s", describe, attempt, exc)
                    raise
                delay = self.delay_for(attempt, retry_after=exc.retry_after)
                log.info(
                    "Transient failure on %s (attempt %d/%d), retrying in %.1fs: %s",
                    describe,
                    attempt,
                    self.max_attempts,
                    delay,
                    exc,
                )
                sleep(delay)
                attempt += 1
