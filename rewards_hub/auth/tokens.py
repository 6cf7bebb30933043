# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
Access Tokens — JWTs that carry the TenantContext.

Claims: sub (user id), tenant_id, roles, is_super_admin, type="access",
plus iss/aud/iat/exp.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from rewards_hub.core.config import RewardsSettings, settings
from rewards_hub.core.errors import InvalidTokenError
from rewards_hub.core.tenant import TenantContext

ACCESS_TOKEN_TYPE = "access"
MIN_SECRET_LENGTH = 32


def _secret(cfg: RewardsSettings) -> str:
    if len(cfg.JWT_SECRET_KEY) < MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET_KEY must be set and at least {MIN_SECRET_LENGTH} characters long"
        )
    return cfg.JWT_SECRET_KEY


def create_access_token(
    ctx: TenantContext,
    expires_minutes: Optional[int] = None,
    cfg: Optional[RewardsSettings] = None,
) -> str:
    cfg = cfg or settings
    now = datetime.now(timezone.utc)
    ttl = expires_minutes if expires_minutes is not None else cfg.ACCESS_TOKEN_TTL_MINUTES
    claims = {
        "sub": ctx.user_id,
        "tenant_id": ctx.tenant_id,
        "roles": sorted(ctx.roles),
        "is_super_admin": ctx.is_super_admin,
        "type": ACCESS_TOKEN_TYPE,
        "iss": cfg.JWT_ISSUER,
        "aud": cfg.JWT_AUDIENCE,
        "iat": now,
        "exp": now + timedelta(minutes=ttl),
    }
    return jwt.encode(claims, _secret(cfg), algorithm=cfg.JWT_ALGORITHM)


def decode_access_token(token: str, cfg: Optional[RewardsSettings] = None) -> TenantContext:
    """Verify ``token`` and rebuild the TenantContext it carries."""
    cfg = cfg or settings
    try:
        claims = jwt.decode(
            token,
            _secret(cfg),
            algorithms=[cfg.JWT_ALGORITHM],
            audience=cfg.JWT_AUDIENCE,
            issuer=cfg.JWT_ISSUER,
            options={"require": ["exp", "sub", "iss", "aud"]},
        )
    except jwt.ExpiredSignatureError:
        raise InvalidTokenError("Token has expired") from None
    except jwt.InvalidTokenError:
        raise InvalidTokenError() from None

    if claims.get("type") != ACCESS_TOKEN_TYPE:
        raise InvalidTokenError("Not an access token")

    try:
        return TenantContext(
            user_id=claims["sub"],
            tenant_id=claims.get("tenant_id"),
            roles=frozenset(claims.get("roles") or ()),
            is_super_admin=bool(claims.get("is_super_admin", False)),
        )
    except ValueError:
        raise InvalidTokenError("Token is missing a subject") from None
