# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
Tenant Context — Multi-tenancy support.

Every storage operation against a tenant-scoped entity runs inside a
tenant scope. The TenantContext is established once per request (or
background job) and is visible to the whole call tree, across ``await``
points, without being passed through every signature.

Usage:
    ctx = TenantContext(user_id="u_1", tenant_id="shop_1")
    with tenant_scope(ctx):
        users = await platform.gateway(Entity.USER).find_many()

    # or, for a whole coroutine:
    await run_in_tenant_scope(ctx, handle_job, job_id)
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Iterator, Optional, TypeVar

from rewards_hub.core.errors import TenantContextMissingError, TenantRequiredError

T = TypeVar("T")

SUPER_ADMIN_ROLE = "super_admin"


@dataclass(frozen=True)
class TenantContext:
    """Immutable tenant identity for request-scoped operations."""

    user_id: str
    tenant_id: Optional[str] = None
    roles: FrozenSet[str] = field(default_factory=frozenset)
    is_super_admin: bool = False

    def __post_init__(self):
        if not self.user_id:
            raise ValueError("user_id must not be empty")
        # Accept any iterable of roles but store it frozen
        object.__setattr__(self, "roles", frozenset(self.roles or ()))

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def __repr__(self) -> str:
        return (
            f"TenantContext(tenant={self.tenant_id!r}, user={self.user_id!r}, "
            f"super_admin={self.is_super_admin})"
        )


_current: ContextVar[Optional[TenantContext]] = ContextVar(
    "rewards_tenant_context", default=None
)


@contextmanager
def tenant_scope(ctx: TenantContext) -> Iterator[TenantContext]:
    """Make ``ctx`` the ambient tenant context for the enclosed block."""
    if not isinstance(ctx, TenantContext):
        raise TypeError(f"Expected TenantContext, got {type(ctx).__name__}")
    token = _current.set(ctx)
    try:
        yield ctx
    finally:
        _current.reset(token)


async def run_in_tenant_scope(
    ctx: TenantContext,
    fn: Callable[..., Awaitable[T]],
    *args: Any,
    **kwargs: Any,
) -> T:
    """Await ``fn(*args, **kwargs)`` with ``ctx`` as the ambient context."""
    with tenant_scope(ctx):
        return await fn(*args, **kwargs)


def get_current_tenant_context() -> TenantContext:
    """Return the ambient context, raising TENANT_CONTEXT_MISSING if unset."""
    ctx = _current.get()
    if ctx is None:
        raise TenantContextMissingError()
    return ctx


def get_tenant_context_or_none() -> Optional[TenantContext]:
    return _current.get()


# ── Explicit filters for hand-written queries ───────────────

def apply_tenant_filter(ctx: TenantContext) -> Dict[str, str]:
    """
    Filter dict scoping a query to the caller's tenant.

    Super admins get an empty filter (all tenants).
    """
    if ctx.is_super_admin:
        return {}
    if not ctx.tenant_id:
        raise TenantRequiredError(ctx.user_id, "tenant data")
    return {"tenant_id": ctx.tenant_id}


def optional_tenant_filter(
    ctx: TenantContext, requested_tenant_id: Optional[str] = None
) -> Dict[str, str]:
    """
    Like apply_tenant_filter, but lets super admins narrow to one tenant.

    Non-super-admins always get their own tenant; the request is ignored.
    """
    if ctx.is_super_admin:
        return {"tenant_id": requested_tenant_id} if requested_tenant_id else {}
    return apply_tenant_filter(ctx)
