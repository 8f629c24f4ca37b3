"""
Redis caching service for event reads.

CACHING STRATEGY
================

What we cache:
  - Event listing pages: "events:list:page={page}&size={size}"
  - Single events by slug: "events:slug:{slug}"

Invalidation strategy:
  - Every successful event save deletes all "events:*" keys (a save can
    change a slug, the ordering, or any listed field)
  - TTL-based expiry as safety net (REDIS_CACHE_TTL)

Bookings are never cached.

The cache is optional: when Redis is disabled or unreachable every read is
a miss and every write is a no-op.
"""

import json
from typing import Optional

import redis.asyncio as redis

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_cache_operation, redis_connection_errors

logger = get_logger(__name__)
settings = get_settings()

_redis_client: Optional[redis.Redis] = None

EVENT_KEY_PREFIX = "events:"


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            redis_connection_errors.inc()
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _make_event_list_key(page: int, page_size: int) -> str:
    return f"{EVENT_KEY_PREFIX}list:page={page}&size={page_size}"


def _make_event_slug_key(slug: str) -> str:
    return f"{EVENT_KEY_PREFIX}slug:{slug}"


async def _get_json(key: str) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    try:
        data = await client.get(key)
        record_cache_operation("get", hit=data is not None)
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def _set_json(key: str, data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        record_cache_operation("set", hit=False)
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def get_cached_events(page: int, page_size: int) -> Optional[dict]:
    """Retrieve a cached event listing page."""
    return await _get_json(_make_event_list_key(page, page_size))


async def set_cached_events(page: int, page_size: int, data: dict) -> None:
    await _set_json(_make_event_list_key(page, page_size), data)


async def get_cached_event(slug: str) -> Optional[dict]:
    return await _get_json(_make_event_slug_key(slug))


async def set_cached_event(slug: str, data: dict) -> None:
    await _set_json(_make_event_slug_key(slug), data)


async def invalidate_event_cache() -> None:
    """
    Invalidate all cached event reads.
    Uses SCAN to find and delete all keys matching the prefix.
    """
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{EVENT_KEY_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
