# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.
"""Unit tests for structured logging."""

import json
import logging

from rewards_hub.core.logging import (
    StructuredFormatter,
    TenantContextFilter,
    get_trace_id,
    trace_scope,
)
from rewards_hub.core.tenant import tenant_scope


def _record(msg="hello", **extra):
    record = logging.LogRecord("rewards.test", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredLogging:
    def test_json_output(self):
        out = json.loads(StructuredFormatter().format(_record(trace_id="tr_1", model="User")))
        assert out["message"] == "hello"
        assert out["level"] == "INFO"
        assert out["trace_id"] == "tr_1"
        assert out["model"] == "User"
        assert "tenant_id" not in out

    def test_filter_stamps_tenant(self, tenant_a):
        record = _record()
        with tenant_scope(tenant_a):
            assert TenantContextFilter().filter(record) is True
        out = json.loads(StructuredFormatter().format(record))
        assert out["tenant_id"] == "shop_a"
        assert out["user_id"] == "user_a"

    def test_filter_keeps_explicit_values(self, tenant_a):
        record = _record(tenant_id="shop_b")
        with tenant_scope(tenant_a):
            TenantContextFilter().filter(record)
        assert record.tenant_id == "shop_b"

    def test_filter_without_context(self):
        record = _record()
        TenantContextFilter().filter(record)
        assert getattr(record, "tenant_id", None) is None

    def test_filter_stamps_bound_trace_id(self, tenant_a):
        record = _record()
        with trace_scope("tr_42"), tenant_scope(tenant_a):
            TenantContextFilter().filter(record)
        out = json.loads(StructuredFormatter().format(record))
        assert out["trace_id"] == "tr_42"
        assert out["tenant_id"] == "shop_a"

    def test_trace_scope_resets(self):
        with trace_scope("outer"):
            with trace_scope("inner"):
                assert get_trace_id() == "inner"
            assert get_trace_id() == "outer"
        assert get_trace_id() is None
        record = _record()
        TenantContextFilter().filter(record)
        assert getattr(record, "trace_id", None) is None
