# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
Audit Sink — Where the isolation layer reports tenant-scoped mutations.

Sinks must never raise into, or stall, the storage operation that produced
the event: failures are logged and dropped.

Redis stream key: rewards:{tenant_id}:audit  (super-admin/no-tenant events
go to rewards:_platform:audit)
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger("rewards.audit")

PLATFORM_STREAM_TENANT = "_platform"

SENSITIVE_FIELDS = frozenset({
    "password",
    "password_hash",
    "api_key",
    "access_token",
    "refresh_token",
    "mfa_secret",
    "mfa_backup_codes",
    "reset_token",
    "webhook_secret",
})

BULK_DELETE_THRESHOLD = 10


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class AuditEvent:
    """One mutating operation against a tenant-scoped entity."""

    tenant_id: Optional[str]
    user_id: str
    action: str
    model: str
    affected: int = 1
    record_id: Optional[str] = None
    changes: Optional[Dict[str, Any]] = None
    is_super_admin: bool = False
    is_suspicious: bool = False
    timestamp: str = field(default_factory=_utcnow_iso)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def get_audit_stream(tenant_id: Optional[str]) -> str:
    """
    Build the per-tenant audit stream name.

    Example:
        get_audit_stream("shop_1") -> "rewards:shop_1:audit"
    """
    return f"rewards:{tenant_id or PLATFORM_STREAM_TENANT}:audit"


def sanitize_for_audit(data: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of ``data`` with secrets replaced by ``[REDACTED]``."""
    return {
        key: ("[REDACTED]" if key in SENSITIVE_FIELDS else value)
        for key, value in data.items()
    }


def detect_suspicious_activity(action: str, affected: int) -> bool:
    """Bulk deletes beyond the threshold are flagged for review."""
    return action == "delete_many" and affected > BULK_DELETE_THRESHOLD


# ── Sinks ───────────────────────────────────────────────────

class AuditSink(ABC):
    """Base sink: subclasses implement emit() and must not raise."""

    @abstractmethod
    async def emit(self, event: AuditEvent) -> None:
        ...


class LoggingAuditSink(AuditSink):
    """Writes one structured log line per event."""

    async def emit(self, event: AuditEvent) -> None:
        log = logger.warning if event.is_suspicious else logger.info
        log(
            "[audit] tenant=%s user=%s %s %s (%d)",
            event.tenant_id, event.user_id, event.action, event.model, event.affected,
            extra={
                "tenant_id": event.tenant_id,
                "user_id": event.user_id,
                "action": event.action,
                "model": event.model,
            },
        )


class RedisAuditSink(AuditSink):
    """Appends events to a capped per-tenant Redis stream."""

    def __init__(
        self,
        redis: aioredis.Redis,
        maxlen: int = 10000,
        timeout: float = 0.5,
    ) -> None:
        self._redis = redis
        self._maxlen = maxlen
        self._timeout = timeout

    async def emit(self, event: AuditEvent) -> None:
        stream = get_audit_stream(event.tenant_id)
        fields = {"event": json.dumps(event.to_dict(), ensure_ascii=False, default=str)}
        try:
            await asyncio.wait_for(
                self._redis.xadd(stream, fields, maxlen=self._maxlen, approximate=True),
                timeout=self._timeout,
            )
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            logger.warning(
                "[audit] Dropped %s %s event for %s: %s",
                event.action, event.model, stream, e,
            )

    async def read_recent(self, tenant_id: Optional[str], count: int = 100) -> List[Dict[str, Any]]:
        """Most recent events first."""
        entries = await self._redis.xrevrange(get_audit_stream(tenant_id), count=count)
        return [json.loads(data["event"]) for _, data in entries]


class FanoutAuditSink(AuditSink):
    """Delivers each event to every wrapped sink."""

    def __init__(self, sinks: Iterable[AuditSink]) -> None:
        self._sinks = list(sinks)

    async def emit(self, event: AuditEvent) -> None:
        for sink in self._sinks:
            try:
                await sink.emit(event)
            except Exception:
                logger.exception("[audit] Sink %s failed", type(sink).__name__)
