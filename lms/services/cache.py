"""Read-through cache for progress snapshots.

Two invalidation strategies cover each other:

  1. TTL: every entry expires after PROGRESS_CACHE_TTL seconds, so a
     missed delete only serves stale data for a bounded time.
  2. Explicit invalidation: every learning write (lesson completion,
     video progress, quiz attempt, offline sync) deletes the
     `progress:{user}:{course}` key before the response is returned.

PROGRESS_CACHE_TTL=0 turns caching off entirely.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable
from uuid import UUID

from lms.core.config import SETTINGS
from lms.core.metrics import CACHE_OPERATIONS
from lms.db.redis import redis_pool


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None:
        """Fetch a cached value.  Returns None on cache miss."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...


class InMemoryCacheService:
    """In-memory cache for dev and tests, no TTL enforcement.

    The autouse fixture in conftest.py clears the store between tests.
    """

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._store[key] = value

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)


class RedisCacheService:
    """Redis-backed cache, shared across all API instances."""

    _PREFIX = "lms:cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        return await self._redis.get(f"{self._PREFIX}{key}")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)

    async def delete(self, key: str) -> None:
        await self._redis.delete(f"{self._PREFIX}{key}")


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if redis_pool is not None:
    cache_service: CacheService = RedisCacheService(redis_pool)
else:
    cache_service = InMemoryCacheService()


# ---------------------------------------------------------------------------
# Progress snapshot helpers
# ---------------------------------------------------------------------------


def progress_cache_key(user_id: UUID, course_id: UUID) -> str:
    return f"progress:{user_id}:{course_id}"


async def get_cached_progress(user_id: UUID, course_id: UUID) -> str | None:
    if SETTINGS.progress_cache_ttl == 0:
        return None
    cached = await cache_service.get(progress_cache_key(user_id, course_id))
    CACHE_OPERATIONS.labels(operation="hit" if cached is not None else "miss").inc()
    return cached


async def cache_progress(user_id: UUID, course_id: UUID, payload: str) -> None:
    if SETTINGS.progress_cache_ttl == 0:
        return
    await cache_service.set(
        progress_cache_key(user_id, course_id), payload, SETTINGS.progress_cache_ttl
    )


async def invalidate_progress(user_id: UUID, course_id: UUID) -> None:
    await cache_service.delete(progress_cache_key(user_id, course_id))
