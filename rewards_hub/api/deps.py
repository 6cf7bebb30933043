# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
API Dependencies — FastAPI dependency injection.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, Request

from rewards_hub.auth.tokens import decode_access_token
from rewards_hub.core.context import RewardsPlatform
from rewards_hub.core.errors import InvalidTokenError
from rewards_hub.core.tenant import TenantContext


async def get_tenant_context(
    request: Request,
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> TenantContext:
    """
    Resolve the caller's TenantContext from a Bearer access token.

    The token is verified against the platform's settings; anything else
    (missing header, wrong scheme, bad signature, expired) is a 401.
    """
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing bearer token")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Missing bearer token")

    platform = get_platform(request)
    try:
        return decode_access_token(token.strip(), platform.settings)
    except InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=e.message) from None


def get_platform(request: Request) -> RewardsPlatform:
    platform = getattr(request.app.state, "platform", None)
    if platform is None:
        raise HTTPException(status_code=503, detail="Platform not initialized")
    return platform
