"""Redis connection management.

Mirrors engine.py: with REDIS_URL set, a shared async connection pool is
created at import time; without it `redis_pool` is None and consumers
(the progress cache) fall back to in-memory implementations.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from lms.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_pool = None


async def ping_redis() -> bool:
    if redis_pool is None:
        return True
    try:
        await redis_pool.ping()  # type: ignore[misc]
        return True
    except Exception:
        logger.exception("Redis readiness check failed")
        return False


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook for Redis; mirrors lifespan_db()."""
    if redis_pool is None:
        logger.info("No REDIS_URL configured; progress cache is in-memory")
        yield
        return

    # Start even when Redis is unreachable; /ready reports it as down.
    if await ping_redis():
        logger.info("Redis connected: %s", SETTINGS.redis_url)

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
