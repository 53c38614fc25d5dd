"""Encryption of confidential email addresses stored in public records.

Tokens look like an email address so they fit the same record slot::

    encrypted+<hex(nonce || ciphertext)>@team-data.invalid

Readers without the key can tell the field is present but confidential.
The payload is ChaCha20-Poly1305 with a fresh random nonce per call, so
encrypting the same address twice yields different tokens.
"""

from __future__ import annotations

import os
from typing import Final

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305

from teamsync.domain.errors import (
    AuthenticationFailedError,
    InvalidKeyError,
    MalformedTokenError,
)

TOKEN_PREFIX: Final[str] = "encrypted+"
TOKEN_SUFFIX: Final[str] = "@team-data.invalid"
KEY_LENGTH: Final[int] = 32
NONCE_LENGTH: Final[int] = 12
_TAG_LENGTH: Final[int] = 16

type KeyMaterial = str | bytes


def is_encrypted(value: str) -> bool:
    """Return True when ``value`` carries the token framing."""

    return value.startswith(TOKEN_PREFIX) and value.endswith(TOKEN_SUFFIX)


def encrypt(plaintext: str, key: KeyMaterial) -> str:
    """Encrypt an email address into a token."""

    nonce = os.urandom(NONCE_LENGTH)
    ciphertext = _cipher(key).encrypt(nonce, plaintext.encode("utf-8"), None)
    return f"{TOKEN_PREFIX}{(nonce + ciphertext).hex()}{TOKEN_SUFFIX}"


def decrypt(token: str, key: KeyMaterial) -> str:
    """Decrypt a token produced by :func:`encrypt`.

    Raises ``MalformedTokenError`` for anything that is not a well-formed token
    and ``AuthenticationFailedError`` when the key is wrong or the token was
    modified.
    """

    if not is_encrypted(token):
        raise MalformedTokenError("value is not an encrypted email token")
    encoded = token[len(TOKEN_PREFIX) : len(token) - len(TOKEN_SUFFIX)]
    try:
        payload = bytes.fromhex(encoded)
    except ValueError as exc:
        raise MalformedTokenError("token payload is not valid hex") from exc
    if len(payload) < NONCE_LENGTH + _TAG_LENGTH:
        raise MalformedTokenError("token payload is too short")

    nonce, ciphertext = payload[:NONCE_LENGTH], payload[NONCE_LENGTH:]
    try:
        plaintext = _cipher(key).decrypt(nonce, ciphertext, None)
    except InvalidTag as exc:
        raise AuthenticationFailedError("token authentication failed") from exc
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedTokenError("decrypted payload is not UTF-8") from exc


def try_decrypt(value: str, key: KeyMaterial) -> str:
    """Decrypt ``value`` if it is a token, otherwise return it unchanged."""

    if is_encrypted(value):
        return decrypt(value, key)
    return value


def _cipher(key: KeyMaterial) -> ChaCha20Poly1305:
    raw = key.encode("utf-8") if isinstance(key, str) else key
    if len(raw) != KEY_LENGTH:
        raise InvalidKeyError(f"expected a {KEY_LENGTH}-byte key, got {len(raw)} bytes")
    try:
        return ChaCha20Poly1305(raw)
    except ValueError as exc:
        raise InvalidKeyError(str(exc)) from exc
