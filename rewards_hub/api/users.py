# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
Users API — Tenant-scoped user management.

Handlers never filter by tenant themselves: the gateway scopes every query
to the caller's tenant once the body runs inside tenant_scope().
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from rewards_hub.api.deps import get_platform, get_tenant_context
from rewards_hub.auth.mfa import MFAService
from rewards_hub.auth.passwords import hash_password, validate_password_strength
from rewards_hub.auth.rbac import require_permission
from rewards_hub.core.context import RewardsPlatform
from rewards_hub.core.errors import RewardsError
from rewards_hub.core.tenant import TenantContext, optional_tenant_filter, tenant_scope
from rewards_hub.storage.entities import Entity

logger = logging.getLogger("rewards.api.users")

router = APIRouter(prefix="/users", tags=["users"])

HIDDEN_USER_FIELDS = frozenset({"password_hash", "mfa_secret", "mfa_backup_codes"})


# ── Request Models ──────────────────────────────────────────

class CreateUserRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    tenant_id: Optional[str] = Field(
        default=None, description="Only honoured for super admins"
    )


class MFACodeRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=32)


def _public(record: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in record.items() if k not in HIDDEN_USER_FIELDS}


# ── Endpoints ───────────────────────────────────────────────

@router.get("")
async def list_users(
    tenant_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    tenant: TenantContext = Depends(get_tenant_context),
    platform: RewardsPlatform = Depends(get_platform),
) -> Dict[str, Any]:
    require_permission(tenant, "users", "read")
    with tenant_scope(tenant):
        users = platform.gateway(Entity.USER)
        where = optional_tenant_filter(tenant, tenant_id)
        rows = await users.find_many(where, order_by="-created_at", limit=limit, offset=offset)
        total = await users.count(where)
    return {"items": [_public(r) for r in rows], "total": total}


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    tenant: TenantContext = Depends(get_tenant_context),
    platform: RewardsPlatform = Depends(get_platform),
) -> Dict[str, Any]:
    require_permission(tenant, "users", "read")
    with tenant_scope(tenant):
        record = await platform.gateway(Entity.USER).find_unique_or_raise({"id": user_id})
    return _public(record)


@router.post("", status_code=201)
async def create_user(
    req: CreateUserRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    platform: RewardsPlatform = Depends(get_platform),
) -> Dict[str, Any]:
    require_permission(tenant, "users", "create")
    check = validate_password_strength(req.password)
    if not check.valid:
        raise RewardsError(code="WEAK_PASSWORD", message=check.message, status_code=422)

    data = {
        "email": req.email.strip().lower(),
        "password_hash": hash_password(req.password, platform.settings.BCRYPT_ROUNDS),
        "first_name": req.first_name,
        "last_name": req.last_name,
    }
    if tenant.is_super_admin and req.tenant_id:
        data["tenant_id"] = req.tenant_id

    with tenant_scope(tenant):
        record = await platform.gateway(Entity.USER).create(data)
    logger.info("[users] Created user %s", record["id"])
    return _public(record)


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    tenant: TenantContext = Depends(get_tenant_context),
    platform: RewardsPlatform = Depends(get_platform),
) -> Dict[str, Any]:
    require_permission(tenant, "users", "delete")
    with tenant_scope(tenant):
        record = await platform.gateway(Entity.USER).delete({"id": user_id})
    return {"deleted": record["id"]}


# ── MFA ─────────────────────────────────────────────────────

def _mfa_guard(tenant: TenantContext, user_id: str) -> None:
    if tenant.user_id != user_id:
        require_permission(tenant, "users", "update")


@router.post("/{user_id}/mfa/setup")
async def setup_mfa(
    user_id: str,
    tenant: TenantContext = Depends(get_tenant_context),
    platform: RewardsPlatform = Depends(get_platform),
) -> Dict[str, Any]:
    """Start enrollment. The secret and backup codes are only shown here."""
    _mfa_guard(tenant, user_id)
    with tenant_scope(tenant):
        setup = await MFAService(platform.gateway(Entity.USER)).begin_enrollment(user_id)
    return {
        "secret": setup.secret,
        "provisioning_uri": setup.provisioning_uri,
        "backup_codes": setup.backup_codes,
    }


@router.post("/{user_id}/mfa/confirm")
async def confirm_mfa(
    user_id: str,
    req: MFACodeRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    platform: RewardsPlatform = Depends(get_platform),
) -> Dict[str, Any]:
    _mfa_guard(tenant, user_id)
    with tenant_scope(tenant):
        check = await MFAService(platform.gateway(Entity.USER)).confirm_enrollment(user_id, req.code)
    if not check.valid:
        raise RewardsError(code="MFA_INVALID_CODE", message=check.message, status_code=422)
    return {"mfa_enabled": True, "message": check.message}


@router.post("/{user_id}/mfa/verify")
async def verify_mfa(
    user_id: str,
    req: MFACodeRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    platform: RewardsPlatform = Depends(get_platform),
) -> Dict[str, Any]:
    _mfa_guard(tenant, user_id)
    with tenant_scope(tenant):
        ok = await MFAService(platform.gateway(Entity.USER)).verify_login(user_id, req.code)
    if not ok:
        raise RewardsError(code="MFA_INVALID_CODE", message="Invalid verification code", status_code=401)
    return {"verified": True}


@router.delete("/{user_id}/mfa")
async def disable_mfa(
    user_id: str,
    tenant: TenantContext = Depends(get_tenant_context),
    platform: RewardsPlatform = Depends(get_platform),
) -> Dict[str, Any]:
    _mfa_guard(tenant, user_id)
    with tenant_scope(tenant):
        users = platform.gateway(Entity.USER)
        await users.find_unique_or_raise({"id": user_id})
        await MFAService(users).disable(user_id)
    return {"mfa_enabled": False}
