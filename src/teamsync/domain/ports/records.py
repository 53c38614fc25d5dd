"""Port for loading the authored record set."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from teamsync.domain.model import Snapshot


@runtime_checkable
class RecordSource(Protocol):
    """Produce a typed snapshot; raises ``RecordError`` for unparsable input."""

    def load(self) -> Snapshot: ...


__all__ = ["RecordSource"]
