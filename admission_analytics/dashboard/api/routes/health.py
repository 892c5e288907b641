"""Health check endpoint for the analytics API."""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException

from admission_analytics import __version__
from admission_analytics.dashboard.api.dependencies import StorageDep
from admission_analytics.dashboard.models.health import DatabaseHealth, HealthResponse
from admission_analytics.domain.ports import AdmissionStorePort

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


async def check_database_health(storage: AdmissionStorePort) -> DatabaseHealth:
    """Ping the store and time the round trip."""
    db_type = storage.db_config.db_type if hasattr(storage, 'db_config') else "memory"

    start_time = time.time()
    result = storage.ping()
    if result.is_success():
        response_time = (time.time() - start_time) * 1000
        return DatabaseHealth(status="connected", type=db_type, response_time_ms=round(response_time, 2))

    logger.warning(f"Database ping failed: {result.error}")
    return DatabaseHealth(status="disconnected", type=db_type, response_time_ms=None)


@router.get("/health", response_model=HealthResponse)
async def health_check(storage: StorageDep) -> HealthResponse:
    """Health check endpoint.

    Used by monitoring tools and load balancers; reports "unhealthy" when
    the store does not answer.
    """
    try:
        db_health = await check_database_health(storage)
        overall_status = "healthy" if db_health.status == "connected" else "unhealthy"

        return HealthResponse(
            status=overall_status,
            timestamp=datetime.now(timezone.utc),
            version=__version__,
            database=db_health
        )

    except Exception as e:
        logger.error(f"Health check failed: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="Health check failed"
        )
