# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
Platform Context — Composition root that owns all shared clients.

Built once at startup (FastAPI lifespan or a worker's main) and handed to
whatever needs storage. There are no module-level client singletons: the
database, the Redis pool and the field cipher all live here.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

import redis.asyncio as aioredis

from rewards_hub.audit.sink import AuditSink, FanoutAuditSink, LoggingAuditSink, RedisAuditSink
from rewards_hub.core.config import RewardsSettings, settings
from rewards_hub.crypto.cipher import FieldCipher
from rewards_hub.crypto.codec import FieldEncryptionGateway
from rewards_hub.isolation.tenant_filter import TenantIsolationGateway
from rewards_hub.storage.database import Database
from rewards_hub.storage.entities import Entity
from rewards_hub.storage.gateway import EntityGateway
from rewards_hub.storage.memory import InMemoryEntityGateway
from rewards_hub.storage.redis_client import close_redis, create_redis
from rewards_hub.storage.repositories import SqlEntityGateway

logger = logging.getLogger("rewards.platform")


class RewardsPlatform:
    """
    Holds all runtime references for the platform.

    Every gateway handed out is composed the same way:
        TenantIsolationGateway(FieldEncryptionGateway(<base gateway>))
    """

    def __init__(
        self,
        cfg: Optional[RewardsSettings] = None,
        *,
        database: Optional[Database] = None,
        redis: Optional[aioredis.Redis] = None,
        cipher: Optional[FieldCipher] = None,
        audit_sink: Optional[AuditSink] = None,
        in_memory: bool = False,
    ) -> None:
        self.settings = cfg or settings
        self.database = database
        self.redis = redis
        self.cipher = cipher
        self.audit_sink = audit_sink
        self._in_memory = in_memory
        self._owns_redis = redis is None
        self._stores: Dict[Entity, EntityGateway] = {}
        self._gateways: Dict[Entity, EntityGateway] = {}
        self._started = False

    @classmethod
    def for_testing(
        cls,
        cipher: FieldCipher,
        audit_sink: Optional[AuditSink] = None,
        redis: Optional[aioredis.Redis] = None,
    ) -> "RewardsPlatform":
        """A started platform backed by in-memory gateways."""
        platform = cls(cipher=cipher, audit_sink=audit_sink or LoggingAuditSink(), redis=redis, in_memory=True)
        platform._owns_redis = False
        platform._started = True
        return platform

    @property
    def started(self) -> bool:
        return self._started

    # ── Lifecycle ───────────────────────────────────────────────

    async def startup(self) -> None:
        """Validate secrets and open connections. Misconfiguration is fatal here."""
        if self._started:
            return
        if self.cipher is None:
            self.cipher = FieldCipher.from_hex(self.settings.ENCRYPTION_KEY)

        if not self._in_memory:
            if self.database is None:
                self.database = Database(
                    self.settings.DATABASE_URL,
                    pool_size=self.settings.DATABASE_POOL_SIZE,
                    max_overflow=5,
                    echo=False,
                )
            await self.database.connect()

        if self.redis is None and self.settings.AUDIT_STREAM_ENABLED:
            self.redis = create_redis(self.settings.REDIS_URL)

        if self.audit_sink is None:
            sinks = [LoggingAuditSink()]
            if self.redis is not None and self.settings.AUDIT_STREAM_ENABLED:
                sinks.append(RedisAuditSink(
                    self.redis,
                    maxlen=self.settings.AUDIT_STREAM_MAXLEN,
                    timeout=self.settings.AUDIT_EMIT_TIMEOUT,
                ))
            self.audit_sink = FanoutAuditSink(sinks)

        self._started = True
        logger.info("[RewardsHub] Platform started (env=%s)", self.settings.REWARDS_ENV)

    async def shutdown(self) -> None:
        if self.database is not None:
            await self.database.dispose()
        if self.redis is not None and self._owns_redis:
            await close_redis(self.redis)
            self.redis = None
        self._gateways.clear()
        self._started = False
        logger.info("[RewardsHub] Shutdown complete")

    # ── Gateways ────────────────────────────────────────────────

    def store(self, entity: Entity) -> EntityGateway:
        """The undecorated base gateway. Bypasses isolation and encryption."""
        if entity not in self._stores:
            if self._in_memory:
                self._stores[entity] = InMemoryEntityGateway(entity)
            else:
                if self.database is None:
                    raise RuntimeError("Database not configured. Call startup() first.")
                self._stores[entity] = SqlEntityGateway(self.database, entity)
        return self._stores[entity]

    def gateway(self, entity: Entity) -> EntityGateway:
        """Tenant-scoped, field-encrypted gateway for ``entity``."""
        if not self._started:
            raise RuntimeError("RewardsPlatform not started. Call startup() first.")
        if entity not in self._gateways:
            encrypted = FieldEncryptionGateway(self.store(entity), self.cipher)
            self._gateways[entity] = TenantIsolationGateway(encrypted, self.audit_sink)
        return self._gateways[entity]
