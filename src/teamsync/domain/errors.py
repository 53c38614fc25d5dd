"""Error taxonomy shared by the domain core and its adapters.

Four families, each with its own propagation rule:

- ``ConfigError``: structural defects in the authored records; always fatal,
  reconciliation never starts.
- ``ProviderError``: scoped to one provider run; only ``TransientProviderError``
  is retried.
- ``EncryptionError``: always surfaced to the caller.

Validation findings are values (``Diagnostic``), not exceptions; see
``teamsync.domain.validation``.
"""

from __future__ import annotations


class ConfigError(Exception):
    """Raised when the record snapshot is structurally invalid."""


class RecordError(ConfigError):
    """Raised when a record file cannot be parsed into the domain model."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


class UnknownPermissionError(ConfigError):
    """Raised when a record grants a permission missing from the catalog."""

    def __init__(self, permission: str) -> None:
        super().__init__(f"unknown permission: {permission}")
        self.permission = permission


class CycleError(ConfigError):
    """Raised when team inclusion/subteam relations form a cycle."""

    def __init__(self, team: str, path: tuple[str, ...]) -> None:
        chain = " => ".join(path)
        super().__init__(f"team `{team}` is part of a cycle: {chain}")
        self.team = team
        self.path = path


class DanglingReferenceError(ConfigError):
    """Raised when a record references an entity that does not exist."""

    def __init__(self, kind: str, name: str, *, referrer: str) -> None:
        super().__init__(f"{referrer} references non-existent {kind} `{name}`")
        self.kind = kind
        self.name = name
        self.referrer = referrer


class ProviderError(Exception):
    """Base class for failures reported by a provider adapter."""

    retryable = False
    fatal_for_provider = False


class TransientProviderError(ProviderError):
    """Rate limiting, timeouts and other failures worth retrying."""

    retryable = True

    def __init__(self, message: str, *, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class UnauthorizedError(ProviderError):
    """Credentials were rejected; the provider run cannot continue."""

    fatal_for_provider = True


class MalformedResponseError(ProviderError):
    """The provider answered with a payload we cannot interpret."""

    fatal_for_provider = True


class RejectedActionError(ProviderError):
    """The provider refused one action; sibling actions may still succeed."""


class EncryptionError(Exception):
    """Base class for email encryption failures."""


class AuthenticationFailedError(EncryptionError):
    """Wrong key or tampered token."""


class MalformedTokenError(EncryptionError):
    """The value looks like a token but cannot be decoded."""


class InvalidKeyError(EncryptionError):
    """The supplied key material has the wrong size."""
