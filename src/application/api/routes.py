"""Service health routes."""

import logging

from fastapi import APIRouter

from src.application.di import get_container

logger = logging.getLogger(__name__)

router = APIRouter()

SERVICE_VERSION = "3.0.0"


@router.get("/health")
async def health_check():
    """
    Health check.

    Reports cache and database connectivity. The cache is "disabled" when
    REDIS_CONNECTION_STRING is not configured.
    """
    container = get_container()

    cache = container.get_presence_cache()
    if cache is None:
        cache_status = "disabled"
    else:
        cache_status = "connected" if await cache.ping() else "unavailable"

    try:
        pool = await container.get_db_pool()
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
        database_status = "connected"
    except Exception as e:
        logger.warning(f"⚠️ Database health check failed: {e}")
        database_status = "unavailable"

    healthy = database_status == "connected" and cache_status != "unavailable"
    return {
        "status": "healthy" if healthy else "degraded",
        "version": SERVICE_VERSION,
        "cache": cache_status,
        "database": database_status,
    }
