# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
Password Security — bcrypt hashing and strength rules.
"""

from __future__ import annotations

import logging
import re
import secrets
import string
from dataclasses import dataclass
from typing import Optional

import bcrypt

from rewards_hub.core.config import settings

logger = logging.getLogger("rewards.auth.passwords")

MIN_LENGTH = 8
MAX_LENGTH = 128
SPECIAL_CHARACTERS = "!@#$%^&*()_+-=[]{};':\"\\|,.<>/?"
# bcrypt only reads the first 72 bytes; newer releases reject longer input
BCRYPT_MAX_BYTES = 72

_BCRYPT_HASH = re.compile(r"\$2[abxy]?\$(\d{2})\$[./A-Za-z0-9]{53}")


@dataclass(frozen=True)
class PasswordCheck:
    valid: bool
    message: str


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def _rounds(rounds: Optional[int]) -> int:
    return rounds if rounds is not None else settings.BCRYPT_ROUNDS


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash a plaintext password with bcrypt."""
    if not password:
        raise ValueError("Password is required")
    if len(password) < MIN_LENGTH:
        raise ValueError(f"Password must be at least {MIN_LENGTH} characters")

    hashed = bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=_rounds(rounds)))
    return hashed.decode("ascii")


def verify_password(password: str, hashed_password: str) -> bool:
    """Check ``password`` against a stored hash. Malformed hashes never match."""
    if not password or not hashed_password:
        return False
    try:
        return bcrypt.checkpw(_encode(password), hashed_password.encode("ascii"))
    except ValueError as e:
        logger.warning("Password verification error: %s", e)
        return False


def validate_password_strength(password: str) -> PasswordCheck:
    if not password:
        return PasswordCheck(False, "Password is required")
    if len(password) < MIN_LENGTH:
        return PasswordCheck(False, f"Password must be at least {MIN_LENGTH} characters")
    if len(password) > MAX_LENGTH:
        return PasswordCheck(False, f"Password must be less than {MAX_LENGTH} characters")
    if not any(c.islower() for c in password):
        return PasswordCheck(False, "Password must contain at least one lowercase letter")
    if not any(c.isupper() for c in password):
        return PasswordCheck(False, "Password must contain at least one uppercase letter")
    if not any(c.isdigit() for c in password):
        return PasswordCheck(False, "Password must contain at least one number")
    if not any(c in SPECIAL_CHARACTERS for c in password):
        return PasswordCheck(False, "Password must contain at least one special character")
    return PasswordCheck(True, "Password meets all requirements")


def generate_secure_password(length: int = 16) -> str:
    """Random password that always satisfies validate_password_strength."""
    length = max(length, MIN_LENGTH)
    pools = [string.ascii_lowercase, string.ascii_uppercase, string.digits, "!@#$%^&*()_+-=[]{}"]
    chars = [secrets.choice(pool) for pool in pools]
    alphabet = "".join(pools)
    chars.extend(secrets.choice(alphabet) for _ in range(length - len(chars)))
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


def needs_rehash(hashed_password: str, rounds: Optional[int] = None) -> bool:
    """True if the hash is malformed or was made with a different cost factor."""
    match = _BCRYPT_HASH.fullmatch(hashed_password or "")
    if match is None:
        return True
    return int(match.group(1)) != _rounds(rounds)
