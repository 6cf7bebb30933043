# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
Field Cipher — AES-256-GCM for values encrypted at rest.

Ciphertext format (all parts hex):  iv:authTag:cipher
  - iv:      16 random bytes, fresh per call
  - authTag: 16-byte GCM tag
  - cipher:  encrypted UTF-8 bytes (may be empty)

The key is a 32-byte secret supplied as 64 hex characters (ENCRYPTION_KEY)
and is derived once per process by the composition root.
"""

from __future__ import annotations

import os
import re

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from rewards_hub.core.errors import DecryptError, EncryptionError, EncryptionKeyError

IV_LENGTH = 16
AUTH_TAG_LENGTH = 16
KEY_HEX_LENGTH = 64

_HEX_KEY = re.compile(r"[0-9a-fA-F]{64}")
_ENVELOPE = re.compile(r"([0-9a-f]{32}):([0-9a-f]{32}):((?:[0-9a-f]{2})*)")


class FieldCipher:
    """Encrypts and decrypts single string values."""

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_HEX_LENGTH // 2:
            raise EncryptionKeyError("ENCRYPTION_KEY must decode to exactly 32 bytes")
        self._aead = AESGCM(key)

    @classmethod
    def from_hex(cls, key_hex: str) -> "FieldCipher":
        """Build from the ENCRYPTION_KEY setting. Missing or malformed keys are fatal."""
        if not key_hex:
            raise EncryptionKeyError(
                "ENCRYPTION_KEY environment variable is required. "
                "Generate with: openssl rand -hex 32"
            )
        if not _HEX_KEY.fullmatch(key_hex):
            raise EncryptionKeyError(
                "ENCRYPTION_KEY must be a 32-byte hex string (64 characters)"
            )
        return cls(bytes.fromhex(key_hex))

    @staticmethod
    def is_encrypted(value) -> bool:
        """True if ``value`` already has the iv:authTag:cipher envelope shape."""
        return isinstance(value, str) and _ENVELOPE.fullmatch(value) is not None

    def encrypt(self, plaintext: str) -> str:
        if not isinstance(plaintext, str):
            raise EncryptionError(
                f"Only strings can be encrypted, got {type(plaintext).__name__}"
            )
        iv = os.urandom(IV_LENGTH)
        # AESGCM appends the tag to the ciphertext
        sealed = self._aead.encrypt(iv, plaintext.encode("utf-8"), None)
        body, tag = sealed[:-AUTH_TAG_LENGTH], sealed[-AUTH_TAG_LENGTH:]
        return f"{iv.hex()}:{tag.hex()}:{body.hex()}"

    def decrypt(self, ciphertext: str) -> str:
        if not isinstance(ciphertext, str):
            raise DecryptError(f"Invalid ciphertext type {type(ciphertext).__name__}")
        match = _ENVELOPE.fullmatch(ciphertext)
        if match is None:
            raise DecryptError("Invalid ciphertext format")

        iv_hex, tag_hex, body_hex = match.groups()
        iv = bytes.fromhex(iv_hex)
        sealed = bytes.fromhex(body_hex) + bytes.fromhex(tag_hex)
        try:
            plaintext = self._aead.decrypt(iv, sealed, None)
        except InvalidTag:
            raise DecryptError("Authentication tag mismatch") from None
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise DecryptError("Decrypted value is not valid UTF-8") from None

    def __repr__(self) -> str:
        return "FieldCipher(aes-256-gcm)"
