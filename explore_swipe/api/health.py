"""
Health check endpoint.
"""
from datetime import datetime, timezone

from fastapi import APIRouter

from explore_swipe import __version__

router = APIRouter()


@router.get("/health")
async def health():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
    }
