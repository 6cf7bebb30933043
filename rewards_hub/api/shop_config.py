# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
Shop Config API — Per-tenant key/value settings.

Values are encrypted at rest unless the entry is written with
``is_encrypted: false``.
"""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from rewards_hub.api.deps import get_platform, get_tenant_context
from rewards_hub.auth.rbac import require_permission
from rewards_hub.core.context import RewardsPlatform
from rewards_hub.core.tenant import TenantContext, tenant_scope
from rewards_hub.storage.entities import Entity

router = APIRouter(prefix="/config", tags=["config"])


class PutConfigRequest(BaseModel):
    value: str
    is_encrypted: bool = True


@router.get("")
async def list_config(
    tenant: TenantContext = Depends(get_tenant_context),
    platform: RewardsPlatform = Depends(get_platform),
) -> List[Dict[str, Any]]:
    require_permission(tenant, "config", "read")
    with tenant_scope(tenant):
        return await platform.gateway(Entity.SHOP_CONFIG).find_many(order_by="key")


@router.get("/{key}")
async def get_config(
    key: str,
    tenant: TenantContext = Depends(get_tenant_context),
    platform: RewardsPlatform = Depends(get_platform),
) -> Dict[str, Any]:
    require_permission(tenant, "config", "read")
    with tenant_scope(tenant):
        return await platform.gateway(Entity.SHOP_CONFIG).find_first_or_raise({"key": key})


@router.put("/{key}")
async def put_config(
    key: str,
    req: PutConfigRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    platform: RewardsPlatform = Depends(get_platform),
) -> Dict[str, Any]:
    """Create or replace a config entry."""
    require_permission(tenant, "config", "update")
    fields = {"value": req.value, "is_encrypted": req.is_encrypted}
    with tenant_scope(tenant):
        return await platform.gateway(Entity.SHOP_CONFIG).upsert(
            where={"key": key},
            create={"key": key, **fields},
            update=fields,
        )
