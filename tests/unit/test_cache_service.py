"""CacheService unit tests with a mocked Redis client."""

import json
from unittest.mock import AsyncMock, MagicMock

import redis.asyncio as redis

from basin.infrastructure.cache.redis_cache import CacheService


def _client() -> MagicMock:
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.setex = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    return client


async def test_injected_client_is_available() -> None:
    """A client passed at construction counts as connected."""
    assert CacheService(redis_client=_client()).is_available()
    assert not CacheService().is_available()


async def test_get_deserializes_json() -> None:
    """get returns the JSON-decoded value, or None on a miss."""
    client = _client()
    client.get = AsyncMock(return_value=json.dumps({"table": "posts"}))
    cache = CacheService(redis_client=client)
    assert await cache.get("k") == {"table": "posts"}
    client.get = AsyncMock(return_value=None)
    assert await cache.get("k") is None


async def test_set_uses_ttl() -> None:
    """set stores JSON with SETEX and the given TTL."""
    client = _client()
    cache = CacheService(redis_client=client)
    assert await cache.set("k", {"a": 1}, ttl=15) is True
    client.setex.assert_awaited_once_with("k", 15, json.dumps({"a": 1}))


async def test_redis_error_degrades_to_miss() -> None:
    """A Redis error is a cache miss, never a request failure."""
    client = _client()
    client.get = AsyncMock(side_effect=redis.RedisError("boom"))
    cache = CacheService(redis_client=client)
    assert await cache.get("k") is None


async def test_unavailable_cache_is_noop() -> None:
    """Without a connection every operation is a no-op."""
    cache = CacheService()
    assert await cache.get("k") is None
    assert await cache.set("k", 1) is False
    assert await cache.delete_pattern("permission:t1:*") == 0


async def test_delete_pattern_unlinks_scanned_keys() -> None:
    """Matched keys are unlinked in a pipeline and counted."""
    client = _client()

    async def scan_iter(match: str):
        for key in ("permission:t1:posts:read:a", "permission:t1:posts:read:b"):
            yield key

    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[2])
    pipeline_ctx = MagicMock()
    pipeline_ctx.__aenter__ = AsyncMock(return_value=pipe)
    pipeline_ctx.__aexit__ = AsyncMock(return_value=False)
    client.scan_iter = scan_iter
    client.pipeline = MagicMock(return_value=pipeline_ctx)

    cache = CacheService(redis_client=client)
    assert await cache.delete_pattern("permission:t1:*") == 2
    pipe.unlink.assert_called_once_with(
        "permission:t1:posts:read:a", "permission:t1:posts:read:b"
    )
