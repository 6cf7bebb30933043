# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
API Middleware — Trace ID propagation and request timing.

The trace id is bound with trace_scope() while the request runs, so every
log line below this point (gateways, audit, crypto) carries it without
being passed along.
"""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from rewards_hub.core.logging import trace_scope

logger = logging.getLogger("rewards.api")

TRACE_HEADER = "X-Trace-Id"
MAX_TRACE_ID_LENGTH = 128


def _incoming_trace_id(request: Request) -> str:
    value = (request.headers.get(TRACE_HEADER) or "").strip()
    if not value or len(value) > MAX_TRACE_ID_LENGTH:
        return str(uuid.uuid4())
    return value


class TraceMiddleware(BaseHTTPMiddleware):
    """Binds a trace id per request, echoes it back and logs the duration."""

    async def dispatch(self, request: Request, call_next):
        trace_id = _incoming_trace_id(request)
        request.state.trace_id = trace_id

        with trace_scope(trace_id):
            start = time.perf_counter()
            response: Response = await call_next(request)
            elapsed = (time.perf_counter() - start) * 1000

            response.headers[TRACE_HEADER] = trace_id
            logger.info(
                "[api] %s %s -> %d (%.0fms)",
                request.method, request.url.path, response.status_code, elapsed,
            )
        return response
