from __future__ import annotations

import pytest

from teamsync.domain.email_encryption import (
    TOKEN_PREFIX,
    TOKEN_SUFFIX,
    decrypt,
    encrypt,
    is_encrypted,
    try_decrypt,
)
from teamsync.domain.errors import (
    AuthenticationFailedError,
    InvalidKeyError,
    MalformedTokenError,
)
from teamsync.domain.model import Email, EmailKind

OTHER_KEY = "fedcba9876543210fedcba9876543210"


def test_token_decrypts_with_the_same_key(email_key: str) -> None:
    token = encrypt("ferris@example.org", email_key)

    assert token.startswith(TOKEN_PREFIX)
    assert token.endswith(TOKEN_SUFFIX)
    assert decrypt(token, email_key) == "ferris@example.org"


def test_encrypting_twice_uses_fresh_nonces(email_key: str) -> None:
    first = encrypt("ferris@example.org", email_key)
    second = encrypt("ferris@example.org", email_key)

    assert first != second
    assert decrypt(first, email_key) == decrypt(second, email_key)


def test_wrong_key_fails_authentication(email_key: str) -> None:
    token = encrypt("ferris@example.org", email_key)

    with pytest.raises(AuthenticationFailedError):
        decrypt(token, OTHER_KEY)


def test_tampered_token_fails_authentication(email_key: str) -> None:
    token = encrypt("ferris@example.org", email_key)
    payload = token[len(TOKEN_PREFIX) : -len(TOKEN_SUFFIX)]
    flipped = payload[:-1] + ("0" if payload[-1] != "0" else "1")

    with pytest.raises(AuthenticationFailedError):
        decrypt(f"{TOKEN_PREFIX}{flipped}{TOKEN_SUFFIX}", email_key)


@pytest.mark.parametrize(
    "token",
    [
        "ferris@example.org",
        f"{TOKEN_PREFIX}not-hex{TOKEN_SUFFIX}",
        f"{TOKEN_PREFIX}abcd{TOKEN_SUFFIX}",
    ],
)
def test_malformed_tokens_are_rejected(token: str, email_key: str) -> None:
    with pytest.raises(MalformedTokenError):
        decrypt(token, email_key)


def test_short_key_is_rejected() -> None:
    with pytest.raises(InvalidKeyError):
        encrypt("ferris@example.org", "too-short")


def test_plain_addresses_pass_through_try_decrypt(email_key: str) -> None:
    assert try_decrypt("ferris@example.org", email_key) == "ferris@example.org"


def test_encrypted_value_is_recognised_without_the_key(email_key: str) -> None:
    token = encrypt("ferris@example.org", email_key)

    assert is_encrypted(token)
    assert Email.from_raw(token).kind is EmailKind.ENCRYPTED
    assert Email.from_raw("ferris@example.org").kind is EmailKind.PLAINTEXT
    assert Email.from_raw(None).kind is EmailKind.ABSENT
