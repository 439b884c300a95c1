"""
Betteh Music CMS - JSON API Routes

Machine-readable endpoints.  Currently only the health check used by
container orchestration and uptime monitors.
"""

import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from loguru import logger

from betteh_cms.config import APP_VERSION
from betteh_cms.errors import StorageFailure

router = APIRouter(prefix="/api", tags=["API"])

# Track startup time for health check
_START_TIME = time.time()


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint for the service."""
    uptime = round(time.time() - _START_TIME, 2)
    uploads_ok = request.app.state.uploads.directory.is_dir()

    try:
        document = await request.app.state.store.read()
    except StorageFailure as e:
        logger.error("❌ Health check could not read the store: {}", e)
        return JSONResponse(
            status_code=503,
            content={
                "status": "error",
                "version": APP_VERSION,
                "uptime_seconds": uptime,
                "store": False,
                "uploads": uploads_ok,
            },
        )

    return {
        "status": "ok" if uploads_ok else "degraded",
        "version": APP_VERSION,
        "uptime_seconds": uptime,
        "store": True,
        "uploads": uploads_ok,
        "counts": {
            "admins": len(document.admins),
            "posts": len(document.posts),
            "gallery": len(document.gallery),
            "staff": len(document.staff),
        },
    }
