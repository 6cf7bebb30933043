# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
API Error Handling — Maps RewardsError onto a unified response body.

Tenant errors are collapsed into a generic 403 so a caller can never tell
whether a resource belongs to another tenant or simply does not exist.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import Request
from fastapi.responses import JSONResponse

from rewards_hub.core.errors import RewardsError
from rewards_hub.core.logging import get_trace_id

logger = logging.getLogger("rewards.api")

FORBIDDEN_CODES = frozenset({"TENANT_CONTEXT_MISSING", "TENANT_REQUIRED", "CROSS_TENANT_WRITE"})


def _trace_id(request: Request) -> str:
    return getattr(request.state, "trace_id", None) or get_trace_id() or str(uuid.uuid4())


async def rewards_error_handler(request: Request, exc: RewardsError) -> JSONResponse:
    """Global exception handler for RewardsError."""
    trace_id = _trace_id(request)

    if exc.code in FORBIDDEN_CODES:
        logger.warning(
            "[api] %s on %s %s", exc.code, request.method, request.url.path,
            extra={"trace_id": trace_id},
        )
        return JSONResponse(
            status_code=403,
            content={"code": "FORBIDDEN", "message": "Forbidden", "trace_id": trace_id},
        )

    if exc.status_code >= 500:
        logger.error("[api] %s: %s", exc.code, exc.message, extra={"trace_id": trace_id})
        message = "Internal server error"
        details = {}
    else:
        message = exc.message
        details = exc.details

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "code": exc.code,
            "message": message,
            "trace_id": trace_id,
            "details": details,
        },
    )
