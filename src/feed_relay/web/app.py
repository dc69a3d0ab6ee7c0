# ABOUTME: FastAPI application factory with engine lifespan.
# ABOUTME: Main entry point for the HTTP scheduling trigger.

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from feed_relay.engine import FeedRelay
from feed_relay.web.routes import api

logger = structlog.get_logger()


def create_app(relay: FeedRelay | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        relay: Pre-built engine. Built from settings at startup when omitted.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        logger.info("app_startup")
        owned = relay is None
        app.state.relay = relay or FeedRelay()
        yield
        logger.info("app_shutdown")
        if owned:
            app.state.relay.close()

    app = FastAPI(
        title="FeedRelay",
        description="Feed update engine trigger",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(api.router)

    return app


# Application instance for uvicorn
app = create_app()
