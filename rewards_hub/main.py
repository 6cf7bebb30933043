# Copyright (c) 2026 RewardsHub Contributors. All Rights Reserved.

"""
RewardsHub Application Entry Point.

FastAPI app with lifespan, middleware and the tenant-scoped API routers.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from rewards_hub.api.errors import rewards_error_handler
from rewards_hub.api.middleware import TraceMiddleware
from rewards_hub.api.shop_config import router as config_router
from rewards_hub.api.users import router as users_router
from rewards_hub.core.config import settings
from rewards_hub.core.context import RewardsPlatform
from rewards_hub.core.errors import RewardsError
from rewards_hub.core.logging import setup_logging

logger = logging.getLogger("rewards.main")

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup/shutdown of platform resources."""
    setup_logging(settings.LOG_LEVEL)
    platform: RewardsPlatform = app.state.platform
    await platform.startup()
    logger.info("[RewardsHub] Platform ready")
    yield
    await platform.shutdown()


def create_app(platform: Optional[RewardsPlatform] = None) -> FastAPI:
    app = FastAPI(
        title="RewardsHub",
        description="Multi-tenant rewards platform",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.platform = platform or RewardsPlatform(settings)

    # ── Middleware ───────────────────────────────────────────
    app.add_middleware(TraceMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Error Handlers ──────────────────────────────────────
    app.add_exception_handler(RewardsError, rewards_error_handler)

    # ── Routes ──────────────────────────────────────────────
    app.include_router(users_router, prefix="/api")
    app.include_router(config_router, prefix="/api")

    @app.get("/health")
    async def health_check(request: Request):
        platform = request.app.state.platform
        return {
            "status": "ok" if platform.started else "starting",
            "version": VERSION,
        }

    return app


app = create_app()
