# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.
"""Unit tests for TenantContext and the ambient tenant scope."""

import asyncio

import pytest

from rewards_hub.core.errors import TenantContextMissingError, TenantRequiredError
from rewards_hub.core.tenant import (
    TenantContext,
    apply_tenant_filter,
    get_current_tenant_context,
    get_tenant_context_or_none,
    optional_tenant_filter,
    run_in_tenant_scope,
    tenant_scope,
)


class TestTenantContext:
    def test_create(self):
        ctx = TenantContext(user_id="u_001", tenant_id="t_001")
        assert ctx.tenant_id == "t_001"
        assert ctx.roles == frozenset()
        assert ctx.is_super_admin is False

    def test_roles_are_frozen(self):
        ctx = TenantContext(user_id="u_001", tenant_id="t_001", roles=["admin", "admin"])
        assert ctx.roles == frozenset({"admin"})
        assert ctx.has_role("admin")
        assert not ctx.has_role("owner")

    def test_empty_user_id_raises(self):
        with pytest.raises(ValueError, match="must not be empty"):
            TenantContext(user_id="")

    def test_immutable(self):
        ctx = TenantContext(user_id="u_001", tenant_id="t_001")
        with pytest.raises(AttributeError):
            ctx.tenant_id = "t_002"

    def test_repr(self):
        ctx = TenantContext(user_id="u_001", tenant_id="t_001")
        assert "t_001" in repr(ctx)


class TestTenantScope:
    def test_no_context_by_default(self):
        assert get_tenant_context_or_none() is None
        with pytest.raises(TenantContextMissingError):
            get_current_tenant_context()

    def test_scope_sets_and_restores(self, tenant_a, tenant_b):
        with tenant_scope(tenant_a):
            assert get_current_tenant_context() is tenant_a
            with tenant_scope(tenant_b):
                assert get_current_tenant_context() is tenant_b
            assert get_current_tenant_context() is tenant_a
        assert get_tenant_context_or_none() is None

    def test_cleared_on_error(self, tenant_a):
        with pytest.raises(RuntimeError):
            with tenant_scope(tenant_a):
                raise RuntimeError("boom")
        assert get_tenant_context_or_none() is None

    def test_rejects_non_context(self):
        with pytest.raises(TypeError):
            with tenant_scope({"tenant_id": "t_001"}):
                pass

    @pytest.mark.asyncio
    async def test_run_in_tenant_scope(self, tenant_a):
        async def job(x):
            await asyncio.sleep(0)
            return get_current_tenant_context().tenant_id, x

        assert await run_in_tenant_scope(tenant_a, job, 7) == ("shop_a", 7)
        assert get_tenant_context_or_none() is None

    @pytest.mark.asyncio
    async def test_concurrent_tasks_do_not_leak(self):
        async def job(tenant_id):
            ctx = TenantContext(user_id=f"u_{tenant_id}", tenant_id=tenant_id)
            async def body():
                seen = []
                for _ in range(5):
                    await asyncio.sleep(0)
                    seen.append(get_current_tenant_context().tenant_id)
                return seen
            return await run_in_tenant_scope(ctx, body)

        results = await asyncio.gather(*(job(f"t_{i}") for i in range(10)))
        for i, seen in enumerate(results):
            assert seen == [f"t_{i}"] * 5


class TestTenantFilters:
    def test_apply_filter(self, tenant_a):
        assert apply_tenant_filter(tenant_a) == {"tenant_id": "shop_a"}

    def test_apply_filter_super_admin(self, super_admin):
        assert apply_tenant_filter(super_admin) == {}

    def test_apply_filter_without_tenant(self):
        with pytest.raises(TenantRequiredError):
            apply_tenant_filter(TenantContext(user_id="orphan"))

    def test_optional_filter_super_admin_narrows(self, super_admin):
        assert optional_tenant_filter(super_admin, "shop_b") == {"tenant_id": "shop_b"}
        assert optional_tenant_filter(super_admin) == {}

    def test_optional_filter_ignores_request_for_tenant_user(self, tenant_a):
        assert optional_tenant_filter(tenant_a, "shop_b") == {"tenant_id": "shop_a"}
