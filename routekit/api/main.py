"""RouteKit status API — FastAPI application factory.

Mounts the status router on top of a RouteKit instance. When no instance
is supplied one is created from ROUTEKIT_* environment variables and closed
on shutdown.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from routekit import __version__
from routekit.api.router import router
from routekit.config import RouteKitConfig
from routekit.sdk import RouteKit

logger = logging.getLogger(__name__)


def create_app(sdk: RouteKit | None = None) -> FastAPI:
    owns_sdk = sdk is None
    instance = sdk or RouteKit(config=RouteKitConfig.from_env())

    # -----------------------------------------------------------------------
    # Lifespan
    # -----------------------------------------------------------------------

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application startup/shutdown hooks."""
        await instance.start()
        logger.info("RouteKit API started")
        yield
        if owns_sdk:
            await instance.close()
        logger.info("RouteKit API shutting down")

    app = FastAPI(
        title="RouteKit",
        description="Route lifecycle, retry, reconnection and event queue status",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.sdk = instance
    app.include_router(router, tags=["Routes"])

    # -----------------------------------------------------------------------
    # Health & root
    # -----------------------------------------------------------------------

    @app.get("/health")
    async def health():
        return {"status": "healthy", "version": __version__}

    return app
