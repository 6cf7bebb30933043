# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
Error Taxonomy — Structured errors shared by storage, crypto and API layers.

Every error carries a stable ``code`` and the HTTP status the API boundary
maps it to.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class RewardsError(Exception):
    """Base error with a machine-readable code."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(f"{code}: {message}")


# ── Tenant isolation ────────────────────────────────────────

class TenantContextMissingError(RewardsError):
    def __init__(self, model: Optional[str] = None):
        target = f" for {model}" if model else ""
        super().__init__(
            code="TENANT_CONTEXT_MISSING",
            message=f"No tenant context available{target}",
            status_code=403,
        )


class TenantRequiredError(RewardsError):
    def __init__(self, user_id: Optional[str], model: str):
        super().__init__(
            code="TENANT_REQUIRED",
            message=f"User {user_id} has no tenant. Cannot access {model}.",
            status_code=403,
        )


class CrossTenantWriteError(RewardsError):
    def __init__(self, user_id: Optional[str], model: str, detail: str):
        super().__init__(
            code="CROSS_TENANT_WRITE",
            message=f"User {user_id} cannot write {model}: {detail}",
            status_code=403,
        )


class PermissionDeniedError(RewardsError):
    def __init__(self, module: str, action: str):
        super().__init__(
            code="PERMISSION_DENIED",
            message=f"Missing {module}:{action} permission",
            status_code=403,
            details={"permission": f"{module}:{action}"},
        )


class RecordNotFoundError(RewardsError):
    def __init__(self, model: str):
        super().__init__(
            code="NOT_FOUND",
            message=f"{model} not found",
            status_code=404,
        )


# ── Field encryption ────────────────────────────────────────

class EncryptionKeyError(RewardsError):
    def __init__(self, detail: str):
        super().__init__(
            code="ENCRYPTION_KEY_INVALID",
            message=detail,
            status_code=500,
        )


class EncryptionError(RewardsError):
    def __init__(self, detail: str):
        super().__init__(
            code="ENCRYPT_ERROR",
            message=detail,
            status_code=500,
        )


class DecryptError(RewardsError):
    def __init__(self, detail: str):
        super().__init__(
            code="DECRYPT_ERROR",
            message=detail,
            status_code=500,
        )


# ── Auth ────────────────────────────────────────────────────

class InvalidTokenError(RewardsError):
    def __init__(self, detail: str = "Invalid or expired token"):
        super().__init__(
            code="UNAUTHORIZED",
            message=detail,
            status_code=401,
        )


class MFAReprovisionRequiredError(RewardsError):
    def __init__(self, user_id: str):
        super().__init__(
            code="MFA_REPROVISION_REQUIRED",
            message=f"MFA secret for user {user_id} is unreadable; MFA must be set up again",
            status_code=409,
        )
