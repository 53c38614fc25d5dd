"""Public interface for the Zulip adapter."""

from __future__ import annotations

from .client import ZulipClient
from .provider import USER_GROUP, ZulipProvider, group_description

__all__ = ["USER_GROUP", "ZulipClient", "ZulipProvider", "group_description"]
