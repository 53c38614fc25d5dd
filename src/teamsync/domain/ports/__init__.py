"""Domain ports (interfaces)."""

from __future__ import annotations

from .identity import IdentityOracle
from .providers import ProviderAdapter
from .records import RecordSource

__all__ = ["IdentityOracle", "ProviderAdapter", "RecordSource"]
