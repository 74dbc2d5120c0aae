"""Health check endpoints."""

from fastapi import APIRouter, Request

from src.config import get_settings
from src.core.database import ForumCassandra
from src.core.redis import ForumRedis


router = APIRouter(prefix="/health", tags=["health"])

FORUM_SERVICES = (
    "content_store",
    "vote_ledger",
    "poll_engine",
    "report_aggregator",
    "moderation_engine",
)


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict:
    """Readiness probe - forum services wired and storage reachable."""
    settings = get_settings()
    state = request.app.state
    services_ready = all(
        getattr(state, name, None) is not None for name in FORUM_SERVICES
    )
    storage_ready = (
        settings.storage_backend == "memory" or ForumCassandra.is_connected()
    )
    notifications = getattr(state, "notification_service", None)
    return {
        "status": "ready" if services_ready and storage_ready else "starting",
        "environment": settings.environment,
        "debug": settings.debug,
        "storage_backend": settings.storage_backend,
        "redis_connected": ForumRedis.is_connected(),
        "events": notifications.get_stats() if notifications else None,
    }


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
