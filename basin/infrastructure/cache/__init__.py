"""Cache infrastructure (Redis)."""

from basin.infrastructure.cache.redis_cache import CacheService

__all__ = ["CacheService"]
