"""Redis connection management.

Mirrors engine.py: with REDIS_URL set there is one shared async client
(with its own connection pool); without it ``redis_pool`` is None and the
task queue and one-time-code store use their in-memory versions.

Redis holds only ephemeral state here: queued notifications and one-time
codes, both of which expire or are consumed.  Nothing the engine must not
lose lives in Redis.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from app.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Verify connectivity on startup, release the pool on shutdown.

    A failed ping is logged, not raised: the API keeps serving and the
    notification hook reports degraded results until Redis is back.
    """
    if redis_pool is None:
        logger.info("No REDIS_URL configured, queue and code store are in-memory")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]
        logger.info("Redis connected")
    except Exception:
        logger.exception("Redis connection failed on startup")

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
