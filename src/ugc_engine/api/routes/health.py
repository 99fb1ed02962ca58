"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from ugc_engine.config import settings
from ugc_engine.logging import get_logger

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    components: dict[str, bool] | None = None


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    database: bool
    redis: bool
    components: dict[str, bool] | None = None


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="Basic health check endpoint that verifies the API is running.",
)
async def health_check() -> HealthResponse:
    """Basic health check - is the API up?

    Reports which generators are backed by a real provider (not a stub).
    """
    from ugc_engine import __version__

    components = {
        "llm": settings.llm_provider,
        "image_gen": settings.image_gen_provider,
        "video_gen": settings.video_gen_provider,
    }

    return HealthResponse(
        status="healthy",
        version=__version__,
        components={k: v != "stub" for k, v in components.items()},
    )


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Readiness check that verifies the database, the broker and the providers.",
)
async def readiness_check() -> ReadinessResponse:
    """Readiness check including dependencies."""
    from ugc_engine.jobs.context import (
        get_image_gen_provider,
        get_llm_provider,
        get_video_gen_provider,
    )

    # Check database
    database_ok = False
    try:
        from ugc_engine.db.session import init_db

        init_db()
        database_ok = True
    except Exception as e:
        logger.error("database_health_check_failed", error=str(e))

    # Check Redis (the job broker)
    redis_ok = False
    try:
        import redis

        r = redis.from_url(settings.redis_url)
        r.ping()
        redis_ok = True
    except Exception as e:
        logger.error("redis_health_check_failed", error=str(e))

    components = {
        "llm": await get_llm_provider().health_check(),
        "image_gen": await get_image_gen_provider().health_check(),
        "video_gen": await get_video_gen_provider().health_check(),
    }

    ready = database_ok and redis_ok and all(components.values())

    return ReadinessResponse(
        ready=ready,
        database=database_ok,
        redis=redis_ok,
        components=components,
    )


@router.get(
    "/health/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    description="Simple liveness probe for Kubernetes.",
)
async def liveness_check() -> dict[str, str]:
    """Kubernetes liveness probe - is the process alive?"""
    return {"status": "alive"}
