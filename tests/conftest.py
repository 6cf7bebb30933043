# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
Shared test fixtures for all RewardsHub tests.
"""

from typing import List

import pytest
import fakeredis.aioredis

from rewards_hub.audit.sink import AuditEvent, AuditSink
from rewards_hub.core.config import RewardsSettings
from rewards_hub.core.context import RewardsPlatform
from rewards_hub.core.tenant import SUPER_ADMIN_ROLE, TenantContext
from rewards_hub.crypto.cipher import FieldCipher

TEST_KEY_HEX = "0123456789abcdef" * 4
TEST_JWT_SECRET = "test-secret-that-is-long-enough-for-hs256"


class RecordingAuditSink(AuditSink):
    """Keeps every emitted event in memory."""

    def __init__(self) -> None:
        self.events: List[AuditEvent] = []

    async def emit(self, event: AuditEvent) -> None:
        self.events.append(event)


@pytest.fixture
def mock_redis():
    """Provide a FakeRedis async instance."""
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


@pytest.fixture
def test_settings() -> RewardsSettings:
    return RewardsSettings(
        _env_file=None,
        ENCRYPTION_KEY=TEST_KEY_HEX,
        JWT_SECRET_KEY=TEST_JWT_SECRET,
        BCRYPT_ROUNDS=4,
        AUDIT_STREAM_ENABLED=False,
    )


@pytest.fixture
def cipher() -> FieldCipher:
    return FieldCipher.from_hex(TEST_KEY_HEX)


@pytest.fixture
def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def platform(cipher, audit_sink, test_settings) -> RewardsPlatform:
    """A started platform on in-memory gateways."""
    p = RewardsPlatform.for_testing(cipher, audit_sink=audit_sink)
    p.settings = test_settings
    return p


@pytest.fixture
def tenant_a() -> TenantContext:
    return TenantContext(user_id="user_a", tenant_id="shop_a", roles={"admin"})


@pytest.fixture
def tenant_b() -> TenantContext:
    return TenantContext(user_id="user_b", tenant_id="shop_b", roles={"admin"})


@pytest.fixture
def super_admin() -> TenantContext:
    return TenantContext(user_id="root", roles={SUPER_ADMIN_ROLE}, is_super_admin=True)
