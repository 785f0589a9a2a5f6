"""
Health Check Endpoints

- /health/live  - Basic liveness (app is running)
- /health/ready - Readiness check (directory store reachable)
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from datetime import datetime
import time

from portal.api.deps import get_feed
from portal.core.config import settings
from portal.core.directory import get_store
from portal.core.logging_config import logger
from portal.services.change_feed import ChangeFeed
from portal.services.directory_store import DirectoryStore


router = APIRouter(prefix="/health", tags=["Health Checks"])


@router.get("/live")
async def liveness():
    return {"status": "alive", "timestamp": datetime.utcnow().isoformat()}


@router.get("/ready")
async def readiness(
    store: DirectoryStore = Depends(get_store),
    feed: ChangeFeed = Depends(get_feed),
):
    """Ready when the directory store answers"""
    start = time.time()
    reachable = await store.ping()
    latency = (time.time() - start) * 1000

    if not reachable:
        logger.error("[HealthCheck] Directory store unreachable")

    body = {
        "status": "ready" if reachable else "not_ready",
        "environment": settings.ENVIRONMENT,
        "checks": {
            "directory_store": {
                "status": "healthy" if reachable else "unhealthy",
                "latency_ms": round(latency, 2),
            },
            "change_feed": feed.get_stats(),
        },
    }
    return JSONResponse(status_code=200 if reachable else 503, content=body)
