# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.
"""Unit tests for role/permission resolution."""

import logging

import pytest

from rewards_hub.auth.rbac import (
    has_all_permissions,
    has_any_permission,
    has_permission,
    permissions_for_roles,
    require_permission,
    user_has_permission,
)
from rewards_hub.core.errors import PermissionDeniedError
from rewards_hub.core.tenant import TenantContext


def _ctx(*roles, **kwargs):
    return TenantContext(user_id="u1", tenant_id="shop_a", roles=set(roles), **kwargs)


class TestHasPermission:
    def test_exact_match(self):
        assert has_permission({"users:read"}, "users", "read")
        assert not has_permission({"users:read"}, "users", "delete")

    def test_module_wildcard(self):
        assert has_permission({"receipts:*"}, "receipts", "verify")
        assert not has_permission({"receipts:*"}, "vouchers", "read")

    def test_global_wildcard(self):
        assert has_permission({"*:*"}, "billing", "manage")

    def test_roles_union(self):
        perms = permissions_for_roles(["user", "admin"])
        assert "vouchers:redeem" in perms
        assert "users:assign_roles" in perms

    def test_unknown_role_grants_nothing(self):
        assert permissions_for_roles(["auditor"]) == frozenset()


class TestContextChecks:
    def test_admin_and_user(self):
        assert user_has_permission(_ctx("admin"), "config", "update")
        assert not user_has_permission(_ctx("user"), "config", "update")
        assert user_has_permission(_ctx("user"), "receipts", "create")

    def test_super_admin_flag_grants_everything(self):
        ctx = TenantContext(user_id="root", is_super_admin=True)
        assert user_has_permission(ctx, "anything", "at_all")

    def test_super_admin_role(self):
        assert user_has_permission(_ctx("super_admin"), "billing", "manage")

    def test_all_and_any(self):
        ctx = _ctx("user")
        assert has_any_permission(ctx, [("users", "delete"), ("vouchers", "read")])
        assert not has_all_permissions(ctx, [("users", "delete"), ("vouchers", "read")])
        assert has_all_permissions(ctx, [("vouchers", "read"), ("vouchers", "redeem")])


class TestRequirePermission:
    def test_allowed(self):
        require_permission(_ctx("admin"), "users", "create")

    def test_denied(self, caplog):
        with caplog.at_level(logging.WARNING, logger="rewards.auth.rbac"):
            with pytest.raises(PermissionDeniedError) as exc:
                require_permission(_ctx("user"), "users", "create")
        assert exc.value.code == "PERMISSION_DENIED"
        assert exc.value.status_code == 403
        assert exc.value.details == {"permission": "users:create"}
        assert any("denied users:create" in r.getMessage() for r in caplog.records)
