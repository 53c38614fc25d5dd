"""People and their contact identities."""

from __future__ import annotations

from dataclasses import dataclass, field

from teamsync.domain.email_encryption import is_encrypted
from teamsync.domain.model.enums import EmailKind
from teamsync.domain.model.permissions import PermissionGrants


@dataclass(frozen=True, slots=True)
class Email:
    """Email slot of a person record.

    Encrypted tokens are recognised by their framing alone; no key is needed
    to tell that a value is present but confidential.
    """

    kind: EmailKind
    value: str | None = None

    @classmethod
    def absent(cls) -> Email:
        return cls(EmailKind.ABSENT)

    @classmethod
    def disabled(cls) -> Email:
        return cls(EmailKind.DISABLED)

    @classmethod
    def plaintext(cls, address: str) -> Email:
        return cls(EmailKind.PLAINTEXT, address)

    @classmethod
    def encrypted(cls, token: str) -> Email:
        return cls(EmailKind.ENCRYPTED, token)

    @classmethod
    def from_raw(cls, raw: str | None) -> Email:
        if raw is None:
            return cls.absent()
        if is_encrypted(raw):
            return cls.encrypted(raw)
        return cls.plaintext(raw)

    @property
    def is_present(self) -> bool:
        return self.kind in {EmailKind.PLAINTEXT, EmailKind.ENCRYPTED}


@dataclass(frozen=True, slots=True, kw_only=True)
class Person:
    github: str
    github_id: int
    name: str
    zulip_id: int | None = None
    discord_id: int | None = None
    matrix: str | None = None
    irc: str | None = None
    email: Email = field(default_factory=Email.absent)
    permissions: PermissionGrants = field(default_factory=PermissionGrants)

    @property
    def irc_nick(self) -> str:
        return self.irc or self.github
