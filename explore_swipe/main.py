"""
Main FastAPI application entrypoint.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from explore_swipe import __version__
from explore_swipe.config import settings
from explore_swipe.api.health import router as health_router
from explore_swipe.api.explore import router as explore_router
from explore_swipe.api.day_activities import router as day_activities_router
from explore_swipe.api.places import router as places_router


logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan event handler for startup and shutdown.
    """
    logger.info(f"Starting Explore Swipe API on {settings.host}:{settings.port}")
    logger.info(f"Debug mode: {settings.debug}")

    yield

    logger.info("Shutting down Explore Swipe API")


# Create FastAPI app
app = FastAPI(
    title="Explore Swipe API",
    description="Swipe-to-explore places for trip itineraries",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware for mobile app
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(health_router, prefix="/api")
app.include_router(explore_router, prefix="/api")
app.include_router(day_activities_router, prefix="/api")
app.include_router(places_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Explore Swipe API",
        "version": __version__,
        "status": "running",
        "docs": "/docs",
    }
