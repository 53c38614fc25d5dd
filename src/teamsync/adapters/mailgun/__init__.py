"""Public interface for the Mailgun adapter."""

from __future__ import annotations

from .client import MailgunClient
from .provider import DESCRIPTION, ROUTE, MailgunProvider
from .routes import ACTIONS_SIZE_LIMIT_BYTES, Route, mangle_address, partition

__all__ = [
    "ACTIONS_SIZE_LIMIT_BYTES",
    "DESCRIPTION",
    "ROUTE",
    "MailgunClient",
    "MailgunProvider",
    "Route",
    "mangle_address",
    "partition",
]
