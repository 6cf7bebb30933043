# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
RBAC — Role to permission resolution for a TenantContext.

Permissions are ``module:action`` strings. A role may grant ``module:*``
for every action of a module, or ``*:*`` for everything.

Super admins (``ctx.is_super_admin``) hold every permission regardless of
their role list. Roles that are not in ROLE_PERMISSIONS grant nothing.
"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Iterable, Tuple

from rewards_hub.core.errors import PermissionDeniedError
from rewards_hub.core.tenant import SUPER_ADMIN_ROLE, TenantContext

logger = logging.getLogger("rewards.auth.rbac")

WILDCARD = "*"

ADMIN_ROLE = "admin"
USER_ROLE = "user"


def _grant(module: str, *actions: str) -> Tuple[str, ...]:
    return tuple(f"{module}:{action}" for action in actions)


ROLE_PERMISSIONS: Dict[str, FrozenSet[str]] = {
    SUPER_ADMIN_ROLE: frozenset({"*:*"}),
    ADMIN_ROLE: frozenset(
        _grant("shops", "read", "update")
        + _grant("users", "create", "read", "update", "delete", "assign_roles")
        + _grant("receipts", "read", "verify", "reject")
        + _grant("vouchers", "create", "read", "update", "delete", "approve")
        + _grant("campaigns", "create", "read", "update", "delete", "activate", "pause")
        + _grant("ads", "create", "read", "update", "delete", "view_analytics")
        + _grant("analytics", "view", "export")
        + _grant("roles", "create", "read", "update", "delete")
        + _grant("config", "read", "update")
        + _grant("audit", "read", "export")
        + _grant("gdpr", "export_data", "delete_data", "manage_consents")
        + _grant("billing", "view", "manage")
    ),
    USER_ROLE: frozenset(
        _grant("receipts", "create", "read_own")
        + _grant("vouchers", "read", "redeem")
        + _grant("gdpr", "export_data")
    ),
}


def permissions_for_roles(roles: Iterable[str]) -> FrozenSet[str]:
    """Union of the permissions granted by ``roles``."""
    granted = set()
    for role in roles:
        granted.update(ROLE_PERMISSIONS.get(role, ()))
    return frozenset(granted)


def has_permission(permissions: Iterable[str], module: str, action: str) -> bool:
    permissions = frozenset(permissions)
    return (
        f"{WILDCARD}:{WILDCARD}" in permissions
        or f"{module}:{WILDCARD}" in permissions
        or f"{module}:{action}" in permissions
    )


def user_has_permission(ctx: TenantContext, module: str, action: str) -> bool:
    if ctx.is_super_admin:
        return True
    return has_permission(permissions_for_roles(ctx.roles), module, action)


def has_all_permissions(ctx: TenantContext, required: Iterable[Tuple[str, str]]) -> bool:
    return all(user_has_permission(ctx, module, action) for module, action in required)


def has_any_permission(ctx: TenantContext, required: Iterable[Tuple[str, str]]) -> bool:
    return any(user_has_permission(ctx, module, action) for module, action in required)


def require_permission(ctx: TenantContext, module: str, action: str) -> None:
    """Raise PermissionDeniedError unless ``ctx`` holds ``module:action``."""
    if user_has_permission(ctx, module, action):
        return
    logger.warning(
        "[rbac] User %s (roles=%s) denied %s:%s",
        ctx.user_id, sorted(ctx.roles), module, action,
    )
    raise PermissionDeniedError(module, action)
