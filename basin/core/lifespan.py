"""Application lifespan: startup and shutdown.

Wiring of infrastructure only (permission cache connect, DB engine dispose).
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from basin.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


def _warn_on_partial_config(settings: Settings) -> None:
    """Log what will not work with the current settings; startup continues regardless."""
    if not settings.secret_key.get_secret_value():
        logger.warning("SECRET_KEY is not set: every item request will be rejected with 401")
    if not settings.database_url:
        logger.warning("DATABASE_URL is not set: item requests will return 503")
    if not settings.redis_enabled:
        logger.info("Permission cache disabled: every request resolves rules from the database")


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Connect the permission cache on startup; release cache and engine on shutdown."""
    settings = get_settings()
    _warn_on_partial_config(settings)

    app.state.cache = None
    if settings.redis_enabled:
        from basin.infrastructure.cache.redis_cache import CacheService

        cache = CacheService()
        await cache.connect()
        app.state.cache = cache

    logger.info("%s %s started", settings.app_name, settings.app_version)
    try:
        yield
    finally:
        if app.state.cache is not None:
            await app.state.cache.disconnect()

        from basin.infrastructure.persistence import database

        if database.engine is not None:
            await database.engine.dispose()
            logger.info("Database engine disposed")
