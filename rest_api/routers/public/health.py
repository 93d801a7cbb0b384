"""
Health check endpoints for the REST API.
Provides basic and detailed health status of the service and its dependencies.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text

from shared.config.settings import settings
from shared.infrastructure.db import SessionLocal
from shared.infrastructure.events import get_redis_pool
from shared.utils.health import (
    HealthCheckResult,
    HealthStatus,
    aggregate_health_checks,
    health_check_with_timeout,
)
from rest_api.core.dependencies import get_store
from rest_api.services.store import DocumentStore


router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
def health_check():
    """
    Basic health check endpoint.
    Returns service status without checking dependencies.
    """
    return {
        "status": "healthy",
        "service": "rest-api",
        "environment": settings.environment,
    }


@health_check_with_timeout(timeout=3.0, component="database")
async def check_database_health() -> dict:
    """Check database connectivity."""
    with SessionLocal() as db:
        db.execute(text("SELECT 1"))
        dialect = db.get_bind().dialect.name
    return {"dialect": dialect}


@health_check_with_timeout(timeout=3.0, component="redis")
async def _ping_redis() -> dict:
    client = await get_redis_pool()
    await client.ping()
    return {"channel": settings.redis_changes_channel}


async def check_redis_health() -> HealthCheckResult:
    """Redis is only a dependency when the cross-process change feed is on."""
    if not settings.live_query_redis_enabled:
        return HealthCheckResult(status=HealthStatus.DISABLED, component="redis")
    return await _ping_redis()


@router.get("/health/detailed")
async def detailed_health_check(store: DocumentStore = Depends(get_store)):
    """
    Detailed health check that verifies connectivity to dependencies.

    Returns 503 Service Unavailable if any dependency is down.
    """
    health_results = await aggregate_health_checks([
        check_database_health(),
        check_redis_health(),
    ])

    checks = {
        "service": "rest-api",
        "environment": settings.environment,
        "status": health_results["status"],
        "dependencies": health_results["components"],
        "live_queries": {"subscriptions": store.hub.subscription_count()},
    }

    if health_results["status"] != HealthStatus.HEALTHY.value:
        return JSONResponse(content=checks, status_code=503)

    return checks
