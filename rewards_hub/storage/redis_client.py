# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
Redis Connection Factory — Async connection pool owned by the platform.
"""

from __future__ import annotations

import redis.asyncio as aioredis
from redis.backoff import ExponentialBackoff
from redis.retry import Retry
from redis.exceptions import (
    ConnectionError,
    TimeoutError,
    BusyLoadingError,
)

_RETRY_ERRORS = [ConnectionError, TimeoutError, BusyLoadingError, OSError]


def create_redis(url: str, max_connections: int = 20) -> aioredis.Redis:
    """
    Build an async Redis client with a connection pool.

    Uses retry-on-error so stale pool connections are transparently reconnected.
    """
    return aioredis.from_url(
        url,
        decode_responses=True,
        max_connections=max_connections,
        health_check_interval=15,
        retry_on_timeout=True,
        retry_on_error=_RETRY_ERRORS,
        retry=Retry(ExponentialBackoff(cap=2, base=0.1), retries=3),
        socket_connect_timeout=5,
        socket_timeout=10,
        socket_keepalive=True,
    )


async def close_redis(client: aioredis.Redis) -> None:
    """Gracefully close the client and its pool."""
    await client.aclose()
