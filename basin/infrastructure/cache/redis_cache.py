"""Redis-based cache service.

Provides async Redis caching with TTL support. Used for resolved permissions
only; keys come from basin.infrastructure.cache.keys.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import redis.asyncio as redis

from basin.core.config import get_settings

logger = logging.getLogger(__name__)


class CacheService:
    """Async Redis cache service with TTL support.

    Call connect() at startup and disconnect() at shutdown. Every operation
    degrades to a miss (or no-op) when Redis is unreachable.
    """

    def __init__(self, redis_client: redis.Redis | None = None) -> None:
        """Initialize cache service.

        Args:
            redis_client: Optional Redis client for testing or DI.
        """
        self.redis = redis_client
        self.settings = get_settings()
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Establish Redis connection. Call on app startup."""
        if self.redis is None:
            try:
                self.redis = redis.Redis(
                    host=self.settings.redis_host,
                    port=self.settings.redis_port,
                    db=self.settings.redis_db,
                    password=self.settings.redis_password.get_secret_value()
                    if self.settings.redis_password
                    else None,
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_keepalive=True,
                )
                await self.redis.ping()
                self._connected = True
                logger.info(
                    "Redis cache connected: %s:%s",
                    self.settings.redis_host,
                    self.settings.redis_port,
                )
            except (redis.ConnectionError, redis.TimeoutError) as e:
                logger.warning("Redis connection failed: %s. Cache disabled.", e)
                self._connected = False
                self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection. Call on app shutdown."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            self._connected = False
            logger.info("Redis cache disconnected")

    async def _reconnect(self) -> bool:
        """Attempt to reconnect after disconnect. Returns True if reconnected."""
        if self.redis is None:
            return False
        try:
            await self.redis.aclose()
        except redis.RedisError:
            logger.debug("Ignoring error while closing stale Redis client")
        self.redis = None
        self._connected = False
        await self.connect()
        return self._connected

    def is_available(self) -> bool:
        """Return True if Redis is connected and usable."""
        return self._connected and self.redis is not None

    async def _call[T](
        self, op: str, key: str, command: Callable[[], Awaitable[T]], fallback: T
    ) -> T:
        """Run command; on a dropped connection reconnect and retry it once.

        Any Redis failure yields fallback, so the caller treats it as a miss.
        """
        if not self.is_available():
            return fallback
        try:
            return await command()
        except (redis.ConnectionError, redis.TimeoutError):
            if not await self._reconnect():
                logger.warning("Cache %s unavailable for %s (Redis disconnected)", op, key)
                return fallback
            try:
                return await command()
            except redis.RedisError:
                logger.exception("Cache %s error for %s after reconnect", op, key)
                return fallback
        except redis.RedisError:
            logger.exception("Cache %s error for %s", op, key)
            return fallback

    async def get(self, key: str) -> Any | None:
        """Return cached value (JSON-deserialized) or None if missing/unavailable."""

        async def command() -> Any | None:
            value = await self.redis.get(key)
            logger.debug("Cache %s: %s", "MISS" if value is None else "HIT", key)
            return None if value is None else json.loads(value)

        return await self._call("get", key, command, None)

    async def set(self, key: str, value: Any, ttl: int = 30) -> bool:
        """Store value as JSON with a TTL in seconds. Returns True on success."""
        serialized = json.dumps(value)

        async def command() -> bool:
            await self.redis.setex(key, ttl, serialized)
            logger.debug("Cache SET: %s (TTL: %ss)", key, ttl)
            return True

        return await self._call("set", key, command, False)

    async def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching pattern (SCAN + batched UNLINK). Returns keys removed.

        Args:
            pattern: Redis SCAN match pattern (e.g. permission:tenant-123:*).
        """
        return await self._call(
            "delete_pattern", pattern, lambda: self._scan_unlink(pattern), 0
        )

    async def _scan_unlink(self, pattern: str, chunk_size: int = 500) -> int:
        deleted = 0
        chunk: list[str] = []
        async for key in self.redis.scan_iter(match=pattern):
            chunk.append(key)
            if len(chunk) >= chunk_size:
                deleted += await self._unlink(chunk)
                chunk = []
        if chunk:
            deleted += await self._unlink(chunk)
        if deleted > 0:
            logger.info("Cache INVALIDATE: %s (%s keys)", pattern, deleted)
        return deleted

    async def _unlink(self, keys: list[str]) -> int:
        async with self.redis.pipeline(transaction=False) as pipe:
            pipe.unlink(*keys)
            results = await pipe.execute()
        return sum(int(r or 0) for r in results)
