# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.
"""Unit tests for audit events and sinks."""

import asyncio
import logging

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from rewards_hub.audit.sink import (
    AuditEvent,
    AuditSink,
    FanoutAuditSink,
    LoggingAuditSink,
    RedisAuditSink,
    detect_suspicious_activity,
    get_audit_stream,
    sanitize_for_audit,
)


def _event(**overrides):
    fields = dict(tenant_id="shop_a", user_id="user_a", action="create", model="Receipt", record_id="r1")
    fields.update(overrides)
    return AuditEvent(**fields)


class TestHelpers:
    def test_stream_name(self):
        assert get_audit_stream("shop_1") == "rewards:shop_1:audit"
        assert get_audit_stream(None) == "rewards:_platform:audit"

    def test_sanitize(self):
        clean = sanitize_for_audit({"email": "a@x.io", "password_hash": "h", "api_key": "k"})
        assert clean == {"email": "a@x.io", "password_hash": "[REDACTED]", "api_key": "[REDACTED]"}

    def test_suspicious_only_for_large_bulk_delete(self):
        assert detect_suspicious_activity("delete_many", 11)
        assert not detect_suspicious_activity("delete_many", 10)
        assert not detect_suspicious_activity("update_many", 500)

    def test_event_to_dict(self):
        data = _event().to_dict()
        assert data["action"] == "create"
        assert data["affected"] == 1
        assert "timestamp" in data


class TestRedisAuditSink:
    @pytest.mark.asyncio
    async def test_emit_and_read(self, mock_redis):
        sink = RedisAuditSink(mock_redis)
        await sink.emit(_event(record_id="r1"))
        await sink.emit(_event(record_id="r2", action="delete"))

        events = await sink.read_recent("shop_a")
        assert [e["record_id"] for e in events] == ["r2", "r1"]
        assert events[0]["action"] == "delete"
        assert await sink.read_recent("shop_b") == []

    @pytest.mark.asyncio
    async def test_platform_stream_for_tenantless_events(self, mock_redis):
        sink = RedisAuditSink(mock_redis)
        await sink.emit(_event(tenant_id=None, model="SystemConfig"))
        assert await mock_redis.xlen("rewards:_platform:audit") == 1

    @pytest.mark.asyncio
    async def test_redis_error_is_swallowed(self, caplog):
        class DownRedis:
            async def xadd(self, *args, **kwargs):
                raise RedisConnectionError("refused")

        sink = RedisAuditSink(DownRedis())
        with caplog.at_level(logging.WARNING, logger="rewards.audit"):
            await sink.emit(_event())
        assert any("Dropped" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_slow_redis_times_out(self):
        class SlowRedis:
            async def xadd(self, *args, **kwargs):
                await asyncio.sleep(5)

        sink = RedisAuditSink(SlowRedis(), timeout=0.01)
        await asyncio.wait_for(sink.emit(_event()), timeout=1)


class TestFanoutAuditSink:
    @pytest.mark.asyncio
    async def test_failure_isolated(self, audit_sink):
        class BrokenSink(AuditSink):
            async def emit(self, event):
                raise RuntimeError("boom")

        fanout = FanoutAuditSink([BrokenSink(), audit_sink])
        await fanout.emit(_event())
        assert len(audit_sink.events) == 1

    @pytest.mark.asyncio
    async def test_logging_sink_warns_on_suspicious(self, caplog):
        with caplog.at_level(logging.INFO, logger="rewards.audit"):
            await LoggingAuditSink().emit(_event(action="delete_many", affected=50, is_suspicious=True))
        assert caplog.records[-1].levelno == logging.WARNING

    def test_base_sink_is_abstract(self):
        with pytest.raises(TypeError):
            AuditSink()

        class Incomplete(AuditSink):
            pass

        with pytest.raises(TypeError):
            Incomplete()
