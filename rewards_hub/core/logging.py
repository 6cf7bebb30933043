# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
Structured Logging — JSON format with trace and tenant context.

The request trace id is ambient like the TenantContext: TraceMiddleware
binds it with trace_scope() and TenantContextFilter stamps it onto every
record logged while the request is being served.
"""

from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

from rewards_hub.core.tenant import get_tenant_context_or_none

_CONTEXT_KEYS = ("trace_id", "tenant_id", "user_id", "action", "model")

_current_trace_id: ContextVar[Optional[str]] = ContextVar("rewards_trace_id", default=None)


def get_trace_id() -> Optional[str]:
    return _current_trace_id.get()


@contextmanager
def trace_scope(trace_id: str) -> Iterator[str]:
    """Bind ``trace_id`` for the duration of the block."""
    token = _current_trace_id.set(trace_id)
    try:
        yield trace_id
    finally:
        _current_trace_id.reset(token)


class TenantContextFilter(logging.Filter):
    """Stamps trace_id and tenant_id/user_id from ambient context onto records."""

    def filter(self, record: logging.LogRecord) -> bool:
        trace_id = get_trace_id()
        if trace_id and not getattr(record, "trace_id", None):
            record.trace_id = trace_id

        ctx = get_tenant_context_or_none()
        if ctx is not None:
            if not getattr(record, "tenant_id", None):
                record.tenant_id = ctx.tenant_id
            if not getattr(record, "user_id", None):
                record.user_id = ctx.user_id
        return True


class StructuredFormatter(logging.Formatter):
    """JSON log formatter with trace/tenant/user context."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "module": record.name,
            "message": record.getMessage(),
        }
        for key in _CONTEXT_KEYS:
            val = getattr(record, key, None)
            if val:
                log_entry[key] = val

        if record.exc_info and record.exc_info[0]:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging for the platform."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter())
    handler.addFilter(TenantContextFilter())

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()
    root.addHandler(handler)
