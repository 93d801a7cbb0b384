"""
Application lifespan handler.
Manages startup and shutdown events for the FastAPI application.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from shared.infrastructure.db import engine
from shared.config.settings import settings
from shared.config.logging import setup_logging, rest_api_logger as logger
from shared.infrastructure.events import close_redis_pool
from rest_api.core.dependencies import get_store
from rest_api.models import Base
from rest_api.seed import seed
from rest_api.services.change_feed import ChangeFeedRelay


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs on startup and shutdown.
    """
    setup_logging()

    # Validate production secrets before startup
    secret_errors = settings.validate_production_secrets()
    if secret_errors:
        for error in secret_errors:
            logger.error("Configuration error", error=error)
        if settings.environment == "production":
            raise RuntimeError(
                f"Production configuration errors: {'; '.join(secret_errors)}. "
                "Server will not start with insecure configuration."
            )
        else:
            logger.warning(
                "Running with insecure defaults (acceptable for development only)"
            )

    logger.info("Starting REST API", port=settings.rest_api_port, env=settings.environment)

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")

    store = get_store()
    if settings.seed_demo_data:
        seed(store)

    relay: ChangeFeedRelay | None = None
    if settings.live_query_redis_enabled:
        relay = ChangeFeedRelay(store.hub)
        await relay.start()

    yield

    logger.info("Shutting down REST API")

    if relay is not None:
        await relay.stop()
        await close_redis_pool()
        logger.info("Redis connection pool closed")
