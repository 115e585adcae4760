"""
Health check endpoints.

Provides endpoints for monitoring application health and readiness.
Both are exempt from the global rate limit.
"""

import logging

from fastapi import APIRouter
from pydantic import BaseModel

from api.dependencies import Tables, get_container
from api.models.envelope import envelope
from providers import configured_models
from shared.cache import get_redis_client
from shared.repository import PageRequest

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    status: str
    database: str
    redis: str
    providers: list[str]
    payments: str
    notifications: str


@router.get("/health")
async def health_check():
    """
    Basic health check endpoint.

    Returns 200 if the API is running.
    """
    settings = get_container().settings
    return envelope(
        HealthResponse(status="healthy", version=settings.app_version, environment=settings.environment)
    )


@router.get("/ready")
async def readiness_check():
    """
    Readiness check endpoint.

    Probes the table store and Redis and reports which external services
    are configured. A failed probe reports ``degraded`` rather than erroring.
    """
    container = get_container()
    settings = container.settings

    try:
        await container.repository(Tables.PROFILES).find(page=PageRequest(1, 1), columns="id")
        database = "memory" if container.uses_memory else "connected"
    except Exception as e:
        logger.warning(f"Readiness: table store unavailable ({e!r})")
        database = "unavailable"

    redis = get_redis_client()
    if redis is None:
        redis_status = "disabled"
    else:
        try:
            await redis.ping()
            redis_status = "connected"
        except Exception as e:
            logger.warning(f"Readiness: Redis unavailable ({e!r})")
            redis_status = "unavailable"

    degraded = database == "unavailable" or redis_status == "unavailable"
    return envelope(
        ReadinessResponse(
            status="degraded" if degraded else "ready",
            database=database,
            redis=redis_status,
            providers=[config.provider_type for config in configured_models(settings)],
            payments="configured" if settings.stripe_secret_key else "disabled",
            notifications="configured" if settings.onesignal_app_id else "disabled",
        )
    )
