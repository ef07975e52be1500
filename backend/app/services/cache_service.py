"""
Redis cache for the public event listing.

Keys are namespaced by a generation number:

    events:list:gen               -> integer, bumped on every invalidation
    events:list:{gen}:{params}    -> JSON listing page, expires after REDIS_CACHE_TTL

Invalidation is a single INCR of the generation. Pages written under an
older generation are never read again and age out through their TTL, so no
key scanning is needed. Any event mutation and any participation change that
moves current_participants triggers it.

Event detail is not cached: it carries the live participant count and the
viewer's permissions. Redis errors count as cache misses.
"""

import json
from typing import Optional

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_cache_operation
from app.infrastructure.redis_client import get_redis

logger = get_logger(__name__)
settings = get_settings()

GENERATION_KEY = "events:list:gen"


def listing_key(generation: int, page: int, page_size: int, upcoming_only: bool) -> str:
    return f"events:list:{generation}:page={page}&size={page_size}&upcoming={int(upcoming_only)}"


async def get_listing_generation() -> Optional[int]:
    """
    Current listing generation, or None when Redis is unavailable.

    Read it once before querying the database and pass it to both
    get_cached_events and set_cached_events: a page computed before an
    invalidation is then stored under the old generation and never served.
    """
    client = await get_redis()
    if client is None:
        return None
    try:
        value = await client.get(GENERATION_KEY)
    except Exception as e:
        logger.warning("event_cache_read_failed", error=str(e))
        return None
    return int(value) if value else 0


async def get_cached_events(
    generation: Optional[int],
    page: int,
    page_size: int,
    upcoming_only: bool,
) -> Optional[dict]:
    if generation is None:
        return None
    client = await get_redis()
    if client is None:
        return None

    try:
        data = await client.get(listing_key(generation, page, page_size, upcoming_only))
    except Exception as e:
        logger.warning("event_cache_read_failed", error=str(e))
        return None

    record_cache_operation("get", hit=data is not None)
    return json.loads(data) if data else None


async def set_cached_events(
    generation: Optional[int],
    page: int,
    page_size: int,
    upcoming_only: bool,
    data: dict,
) -> None:
    if generation is None:
        return
    client = await get_redis()
    if client is None:
        return

    try:
        key = listing_key(generation, page, page_size, upcoming_only)
        await client.set(key, json.dumps(data, default=str), ex=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.warning("event_cache_write_failed", error=str(e))
        return
    record_cache_operation("set", hit=False)


async def invalidate_event_cache() -> None:
    client = await get_redis()
    if client is None:
        return

    try:
        generation = await client.incr(GENERATION_KEY)
    except Exception as e:
        logger.error("event_cache_invalidation_failed", error=str(e))
        return
    logger.debug("event_cache_invalidated", generation=generation)


async def get_cache_stats() -> dict:
    """Redis keyspace statistics for /health."""
    client = await get_redis()
    if client is None:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        generation = await client.get(GENERATION_KEY)
    except Exception as e:
        return {"status": "error", "error": str(e)}

    hits = info.get("keyspace_hits", 0)
    misses = info.get("keyspace_misses", 0)
    return {
        "status": "connected",
        "listing_generation": int(generation or 0),
        "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
    }
