# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
Tenant Isolation Filter — Row-level security enforced in the application.

Every operation against a tenant-scoped entity is forced onto the ambient
tenant:

  - reads / count / aggregate / group_by:  where.tenant_id = ctx.tenant_id
  - create:                                data.tenant_id = ctx.tenant_id
  - create_many:                           every element gets tenant_id
  - update / delete (+ _many):             where.tenant_id = ctx.tenant_id
  - upsert:                                where and create forced
  - update payloads:                       tenant_id may only restate ctx.tenant_id

The caller's tenant_id is always overwritten in filters and creates, and an
update can never move a row to another tenant.

Policies:
  - no context on a scoped entity   -> TENANT_CONTEXT_MISSING (fail closed)
  - super admin                     -> unscoped pass-through
  - root entity (Shop)              -> reads unfiltered, context still required;
                                       writes limited to the caller's own shop
  - tenant_id is None otherwise     -> TENANT_REQUIRED
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from rewards_hub.audit.sink import (
    AuditEvent,
    AuditSink,
    LoggingAuditSink,
    detect_suspicious_activity,
    sanitize_for_audit,
)
from rewards_hub.core.errors import (
    CrossTenantWriteError,
    RecordNotFoundError,
    TenantContextMissingError,
    TenantRequiredError,
)
from rewards_hub.core.tenant import TenantContext, get_tenant_context_or_none
from rewards_hub.storage.entities import ROOT_TENANT_ENTITY, TENANT_KEY, is_tenant_scoped
from rewards_hub.storage.gateway import EntityGateway, GatewayDecorator

logger = logging.getLogger("rewards.isolation")

ROOT_KEY = "id"


class TenantIsolationGateway(GatewayDecorator):
    """Scopes every operation on a tenant-scoped entity to the current tenant."""

    def __init__(self, inner: EntityGateway, audit_sink: Optional[AuditSink] = None) -> None:
        super().__init__(inner)
        self._audit = audit_sink or LoggingAuditSink()
        self._scoped = is_tenant_scoped(self.entity)
        self._is_root = self.entity == ROOT_TENANT_ENTITY

    # ── Policy ──────────────────────────────────────────────────

    def _scope(self) -> Tuple[Optional[TenantContext], bool]:
        """
        Resolve the context for this operation.

        Returns (context, enforce). ``context`` is None for entities that are
        not tenant-scoped; ``enforce`` says whether tenant_id must be injected.
        """
        if not self._scoped:
            return None, False

        ctx = get_tenant_context_or_none()
        if ctx is None:
            logger.warning(
                "[isolation] Rejected %s operation without tenant context", self.entity,
                extra={"model": str(self.entity)},
            )
            raise TenantContextMissingError(str(self.entity))

        if ctx.is_super_admin or self._is_root:
            return ctx, False

        self._require_tenant(ctx)
        return ctx, True

    def _require_tenant(self, ctx: TenantContext) -> None:
        if not ctx.tenant_id:
            logger.warning(
                "[isolation] User %s has no tenant, rejected %s", ctx.user_id, self.entity,
                extra={"model": str(self.entity)},
            )
            raise TenantRequiredError(ctx.user_id, str(self.entity))

    def _pins_root(self, ctx: Optional[TenantContext]) -> bool:
        """True when a write must be limited to the caller's own shop row."""
        if not self._is_root or ctx is None or ctx.is_super_admin:
            return False
        self._require_tenant(ctx)
        return True

    @staticmethod
    def _force(mapping, ctx: TenantContext) -> Dict[str, Any]:
        return {**dict(mapping or {}), TENANT_KEY: ctx.tenant_id}

    def _owned_key(self) -> str:
        return ROOT_KEY if self._is_root else TENANT_KEY

    def _guard_payload(self, data, ctx: TenantContext) -> None:
        """Reject a payload that would point the row at another tenant."""
        key = self._owned_key()
        if key in data and data[key] != ctx.tenant_id:
            logger.warning(
                "[isolation] User %s tried to set %s.%s=%s from tenant %s",
                ctx.user_id, self.entity, key, data[key], ctx.tenant_id,
                extra={"model": str(self.entity)},
            )
            raise CrossTenantWriteError(
                ctx.user_id, str(self.entity), f"{key} cannot be changed to another tenant"
            )

    def _write_scope(self, where) -> Tuple[Optional[TenantContext], bool, Optional[Dict[str, Any]]]:
        """
        Resolve (context, guarded, where) for a mutation.

        ``guarded`` says payloads must be checked with _guard_payload. A None
        ``where`` means the filter targets a shop the caller does not own.
        """
        ctx, enforce = self._scope()
        if enforce:
            return ctx, True, self._force(where, ctx)
        if self._pins_root(ctx):
            where = dict(where or {})
            if where.get(ROOT_KEY, ctx.tenant_id) != ctx.tenant_id:
                return ctx, True, None
            return ctx, True, {**where, ROOT_KEY: ctx.tenant_id}
        return ctx, False, where

    async def _audit_mutation(
        self,
        ctx: Optional[TenantContext],
        action: str,
        affected: int = 1,
        record: Optional[Dict[str, Any]] = None,
        changes: Optional[Dict[str, Any]] = None,
    ) -> None:
        if ctx is None:
            return
        tenant_id = ctx.tenant_id
        if tenant_id is None and record is not None:
            tenant_id = record.get(TENANT_KEY)
        event = AuditEvent(
            tenant_id=tenant_id,
            user_id=ctx.user_id,
            action=action,
            model=str(self.entity),
            affected=affected,
            record_id=record.get("id") if record else None,
            changes=changes,
            is_super_admin=ctx.is_super_admin,
            is_suspicious=detect_suspicious_activity(action, affected),
        )
        try:
            await self._audit.emit(event)
        except Exception:
            logger.exception("[isolation] Audit emit failed for %s %s", action, self.entity)

    # ── Reads ───────────────────────────────────────────────────

    def _read_where(self, where):
        ctx, enforce = self._scope()
        return self._force(where, ctx) if enforce else where

    async def find_unique(self, where):
        return await self._inner.find_unique(self._read_where(where))

    async def find_first(self, where=None, order_by=None):
        return await self._inner.find_first(self._read_where(where), order_by=order_by)

    async def find_many(self, where=None, order_by=None, limit=None, offset=0):
        return await self._inner.find_many(
            self._read_where(where), order_by=order_by, limit=limit, offset=offset
        )

    async def count(self, where=None):
        return await self._inner.count(self._read_where(where))

    async def aggregate(self, where=None, *, sum_fields=(), avg_fields=(), min_fields=(), max_fields=()):
        return await self._inner.aggregate(
            self._read_where(where),
            sum_fields=sum_fields,
            avg_fields=avg_fields,
            min_fields=min_fields,
            max_fields=max_fields,
        )

    async def group_by(self, by, where=None):
        return await self._inner.group_by(by, self._read_where(where))

    # ── Writes ──────────────────────────────────────────────────

    def _create_payload(self, data, ctx: Optional[TenantContext], enforce: bool) -> Dict[str, Any]:
        if enforce:
            return self._force(data, ctx)
        if self._pins_root(ctx):
            self._guard_payload(data, ctx)
            return {**dict(data), ROOT_KEY: ctx.tenant_id}
        return dict(data)

    async def create(self, data):
        ctx, enforce = self._scope()
        payload = self._create_payload(data, ctx, enforce)
        record = await self._inner.create(payload)
        await self._audit_mutation(ctx, "create", record=record, changes=sanitize_for_audit(payload))
        return record

    async def create_many(self, data):
        ctx, enforce = self._scope()
        if isinstance(data, dict):
            data = self._create_payload(data, ctx, enforce)
        else:
            data = [self._create_payload(item, ctx, enforce) for item in data]
        affected = await self._inner.create_many(data)
        await self._audit_mutation(ctx, "create_many", affected=affected)
        return affected

    async def update(self, where, data):
        ctx, guarded, where = self._write_scope(where)
        if where is None:
            raise RecordNotFoundError(str(self.entity))
        if guarded:
            self._guard_payload(data, ctx)
        record = await self._inner.update(where, data)
        await self._audit_mutation(ctx, "update", record=record, changes=sanitize_for_audit(dict(data)))
        return record

    async def update_many(self, where, data):
        ctx, guarded, where = self._write_scope(where)
        if where is None:
            return 0
        if guarded:
            self._guard_payload(data, ctx)
        affected = await self._inner.update_many(where, data)
        await self._audit_mutation(
            ctx, "update_many", affected=affected, changes=sanitize_for_audit(dict(data))
        )
        return affected

    async def delete(self, where):
        ctx, _, where = self._write_scope(where)
        if where is None:
            raise RecordNotFoundError(str(self.entity))
        record = await self._inner.delete(where)
        await self._audit_mutation(ctx, "delete", record=record)
        return record

    async def delete_many(self, where=None):
        ctx, _, where = self._write_scope(where)
        if where is None:
            return 0
        affected = await self._inner.delete_many(where)
        await self._audit_mutation(ctx, "delete_many", affected=affected)
        return affected

    async def upsert(self, where, create, update):
        ctx, guarded, where = self._write_scope(where)
        if where is None:
            raise CrossTenantWriteError(ctx.user_id, str(self.entity), "not the caller's shop")
        if guarded:
            self._guard_payload(update, ctx)
            create = self._create_payload(create, ctx, enforce=not self._is_root)
        record = await self._inner.upsert(where, create, update)
        await self._audit_mutation(
            ctx,
            "upsert",
            record=record,
            changes={
                "create": sanitize_for_audit(dict(create)),
                "update": sanitize_for_audit(dict(update)),
            },
        )
        return record
