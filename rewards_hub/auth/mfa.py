# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
Multi-Factor Authentication — TOTP secrets and one-time backup codes.

Secrets and backup codes live in the User columns ``mfa_secret`` and
``mfa_backup_codes``. Both are registered encrypted fields, so MFAService
only ever reads and writes plaintext through the User gateway.

A user whose stored secret no longer decrypts comes back with
``mfa_reprovision_required``; such users cannot pass MFA until it is
disabled and enrolled again.
"""

from __future__ import annotations

import hmac
import logging
import re
import secrets
import string
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import pyotp

from rewards_hub.core.errors import MFAReprovisionRequiredError, RewardsError
from rewards_hub.storage.gateway import EntityGateway

logger = logging.getLogger("rewards.auth.mfa")

DEFAULT_ISSUER = "RewardsHub"
SECRET_LENGTH = 32
TOKEN_DIGITS = 6
TOKEN_WINDOW = 1
BACKUP_CODE_COUNT = 8
BACKUP_CODE_LENGTH = 10
BACKUP_CODE_ALPHABET = string.ascii_uppercase + string.digits
BACKUP_CODE_GROUP = 4

REPROVISION_FLAG = "mfa_reprovision_required"

_SEPARATORS = re.compile(r"[\s-]")
_TOKEN = re.compile(rf"\d{{{TOKEN_DIGITS}}}")


@dataclass(frozen=True)
class MFASetup:
    secret: str
    provisioning_uri: str
    backup_codes: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class MFACheck:
    valid: bool
    message: str


# ── TOTP ────────────────────────────────────────────────────

def generate_mfa_secret(email: str, issuer: str = DEFAULT_ISSUER) -> MFASetup:
    """New base32 secret, its otpauth:// URI and a fresh set of backup codes."""
    secret = pyotp.random_base32(length=SECRET_LENGTH)
    uri = pyotp.TOTP(secret).provisioning_uri(name=email, issuer_name=issuer)
    return MFASetup(secret=secret, provisioning_uri=uri, backup_codes=generate_backup_codes())


def _clean(token: Optional[str]) -> str:
    return _SEPARATORS.sub("", token or "")


def verify_mfa_token(token: Optional[str], secret: Optional[str], window: int = TOKEN_WINDOW) -> bool:
    """
    Check a TOTP code against ``secret``.

    Spaces and dashes are ignored; anything but six digits is rejected
    without consulting the secret. ``window`` accepts codes from that many
    adjacent 30s steps.
    """
    token = _clean(token)
    if not secret or not _TOKEN.fullmatch(token):
        return False
    try:
        return pyotp.TOTP(secret).verify(token, valid_window=window)
    except (ValueError, TypeError) as e:
        # Malformed base32 secret
        logger.error("[mfa] TOTP verification failed: %s", e)
        return False


def generate_mfa_token(secret: str) -> str:
    return pyotp.TOTP(secret).now()


# ── Backup codes ────────────────────────────────────────────

def _format_backup_code(raw: str) -> str:
    return "-".join(raw[i:i + BACKUP_CODE_GROUP] for i in range(0, len(raw), BACKUP_CODE_GROUP))


def normalize_backup_code(code: Optional[str]) -> str:
    return _clean(code).upper()


def generate_backup_codes(count: int = BACKUP_CODE_COUNT, length: int = BACKUP_CODE_LENGTH) -> List[str]:
    """``count`` random codes formatted as XXXX-XXXX-XX."""
    return [
        _format_backup_code("".join(secrets.choice(BACKUP_CODE_ALPHABET) for _ in range(length)))
        for _ in range(count)
    ]


def _matching_index(code: Optional[str], codes: Sequence[str]) -> Optional[int]:
    wanted = normalize_backup_code(code)
    if not wanted:
        return None
    for index, stored in enumerate(codes or ()):
        if hmac.compare_digest(normalize_backup_code(stored), wanted):
            return index
    return None


def verify_backup_code(code: Optional[str], codes: Sequence[str]) -> bool:
    return _matching_index(code, codes) is not None


def consume_backup_code(code: Optional[str], codes: Sequence[str]) -> Optional[List[str]]:
    """Remaining codes after using ``code``, or None if it does not match."""
    index = _matching_index(code, codes)
    if index is None:
        return None
    return [c for i, c in enumerate(codes) if i != index]


# ── Checks ──────────────────────────────────────────────────

def is_mfa_enabled(user: Dict[str, Any]) -> bool:
    return bool(user.get("mfa_enabled") and user.get("mfa_secret"))


def validate_mfa_setup(token: Optional[str], secret: Optional[str]) -> MFACheck:
    if not token:
        return MFACheck(False, "Verification code is required")
    if not secret:
        return MFACheck(False, "MFA secret is missing")
    if not _TOKEN.fullmatch(_clean(token)):
        return MFACheck(False, f"Verification code must be {TOKEN_DIGITS} digits")
    if verify_mfa_token(token, secret):
        return MFACheck(True, "MFA setup verified successfully")
    return MFACheck(
        False, "Invalid verification code. Please check your authenticator app and try again."
    )


# ── Service ─────────────────────────────────────────────────

class MFAService:
    """
    Enrollment and login verification against the User gateway.

    Calls must run inside tenant_scope(); the gateway keeps every lookup
    within the caller's tenant.
    """

    def __init__(self, users: EntityGateway, issuer: str = DEFAULT_ISSUER) -> None:
        self._users = users
        self._issuer = issuer

    async def _load(self, user_id: str) -> Dict[str, Any]:
        user = await self._users.find_unique_or_raise({"id": user_id})
        if user.get(REPROVISION_FLAG):
            logger.warning("[mfa] User %s has an unreadable MFA secret", user_id)
            raise MFAReprovisionRequiredError(user_id)
        return user

    async def begin_enrollment(self, user_id: str) -> MFASetup:
        """Store a fresh secret and backup codes; MFA stays off until confirmed."""
        user = await self._users.find_unique_or_raise({"id": user_id})
        setup = generate_mfa_secret(user.get("email") or user_id, issuer=self._issuer)
        await self._users.update(
            {"id": user_id},
            {
                "mfa_secret": setup.secret,
                "mfa_backup_codes": setup.backup_codes,
                "mfa_enabled": False,
            },
        )
        logger.info("[mfa] Enrollment started for user %s", user_id)
        return setup

    async def confirm_enrollment(self, user_id: str, token: str) -> MFACheck:
        user = await self._load(user_id)
        check = validate_mfa_setup(token, user.get("mfa_secret"))
        if check.valid:
            await self._users.update({"id": user_id}, {"mfa_enabled": True})
            logger.info("[mfa] MFA enabled for user %s", user_id)
        return check

    async def verify_login(self, user_id: str, code: str) -> bool:
        """Accept a TOTP code, or burn one backup code."""
        user = await self._load(user_id)
        if not is_mfa_enabled(user):
            raise RewardsError(code="MFA_NOT_ENABLED", message="MFA is not enabled", status_code=400)

        if verify_mfa_token(code, user["mfa_secret"]):
            return True

        remaining = consume_backup_code(code, user.get("mfa_backup_codes") or [])
        if remaining is None:
            logger.warning("[mfa] Rejected MFA code for user %s", user_id)
            return False
        await self._users.update({"id": user_id}, {"mfa_backup_codes": remaining})
        logger.info("[mfa] User %s used a backup code, %d left", user_id, len(remaining))
        return True

    async def regenerate_backup_codes(self, user_id: str) -> List[str]:
        user = await self._load(user_id)
        if not is_mfa_enabled(user):
            raise RewardsError(code="MFA_NOT_ENABLED", message="MFA is not enabled", status_code=400)
        codes = generate_backup_codes()
        await self._users.update({"id": user_id}, {"mfa_backup_codes": codes})
        return codes

    async def disable(self, user_id: str) -> None:
        """Clear MFA state; also the way out of mfa_reprovision_required."""
        await self._users.update(
            {"id": user_id},
            {"mfa_enabled": False, "mfa_secret": None, "mfa_backup_codes": None},
        )
        logger.info("[mfa] MFA disabled for user %s", user_id)
