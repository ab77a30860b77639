"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from parceltrack import __version__
from parceltrack.api import router, track_error_handler
from parceltrack.config import Settings
from parceltrack.errors import TrackError
from parceltrack.services import CarrierRegistry, TrackerService

logger = logging.getLogger("parceltrack")


def create_app(settings: Settings | None = None, registry: CarrierRegistry | None = None) -> FastAPI:
    """Build the application.

    If a registry is passed in it must already be initialised, and its
    lifetime belongs to the caller.
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        # Startup
        logger.info("Starting %s...", settings.app_name)
        owned = registry is None
        active = registry
        if active is None:
            active = CarrierRegistry(settings, logger=logger.getChild("registry"))
            await active.init()

        app.state.registry = active
        app.state.tracker = TrackerService(active, settings, logger=logger.getChild("tracker"))
        logger.info("Loaded %d carriers", len(active.carriers))

        yield

        # Shutdown
        logger.info("Shutting down...")
        if owned:
            await active.aclose()

    app = FastAPI(
        title=settings.app_name,
        description="Parcel tracking aggregator",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_exception_handler(TrackError, track_error_handler)
    app.include_router(router)
    return app
