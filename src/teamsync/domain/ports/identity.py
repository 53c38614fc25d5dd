"""Port for confirming that platform identities exist."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class IdentityOracle(Protocol):
    """Read-only lookup of numeric platform ids.

    Implementations raise ``ProviderError`` when the lookup itself fails.
    """

    def identity_exists(self, external_id: int) -> bool: ...


__all__ = ["IdentityOracle"]
