"""
Query result cache.

Results are grouped into named regions so that everything depending on one
forum can be evicted together. Entries only ever hold identifiers or scalar
aggregates; entities are re-read through the session on every call.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from cashews import Cache

from .settings import AppSettings, get_app_settings

logger = logging.getLogger(__name__)

TOTAL_MESSAGES_REGION = "forum_repo.total_messages"
MODERATORS_REGION = "forum_repo.moderators"


def topics_region(forum_id: int) -> str:
    return f"forum_repo.topics#{forum_id}"


def total_posts_region(forum_id: int) -> str:
    return f"forum_repo.total_posts#{forum_id}"


def total_topics_region(forum_id: int) -> str:
    return f"forum_repo.total_topics#{forum_id}"


def forum_regions(forum_id: int) -> list[str]:
    """All per-forum regions touched when a forum's topics or posts change."""
    return [topics_region(forum_id), total_posts_region(forum_id), total_topics_region(forum_id)]


class QueryCache:
    """Region-aware facade over a cashews Cache."""

    def __init__(self, cache: Cache, ttl_seconds: int = 600) -> None:
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key(region: str, *params: Any) -> str:
        return f"{region}:" + ":".join(str(p) for p in params)

    async def get(self, region: str, *params: Any) -> Optional[Any]:
        """Return the cached value or None on a miss."""
        value = await self.cache.get(self.key(region, *params))
        if value is not None:
            logger.debug("Query cache hit for %s", self.key(region, *params))
        return value

    async def set(self, region: str, value: Any, *params: Any) -> None:
        await self.cache.set(self.key(region, *params), value, expire=self.ttl_seconds)

    async def evict(self, *regions: str) -> None:
        """Drop every entry of the given regions."""
        for region in regions:
            await self.cache.delete_match(f"{region}:*")

    async def clear(self) -> None:
        await self.cache.clear()


# PUBLIC_INTERFACE
def create_cache(settings: AppSettings) -> Cache:
    """Build a cashews Cache configured from CACHE_URL."""
    cache = Cache()
    cache.setup(settings.CACHE_URL)
    return cache


_QUERY_CACHE: QueryCache | None = None


# PUBLIC_INTERFACE
def get_query_cache() -> QueryCache:
    """Return the process-wide QueryCache, creating it on first use."""
    global _QUERY_CACHE
    if _QUERY_CACHE is None:
        settings = get_app_settings()
        _QUERY_CACHE = QueryCache(create_cache(settings), ttl_seconds=settings.CACHE_TTL_SECONDS)
    return _QUERY_CACHE
