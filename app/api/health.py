"""Health and readiness endpoints.

  /health (liveness):  "is the process alive?"  Always 200; the body's
                       ``status`` says whether dependencies are impaired.
  /ready (readiness):  "can this instance take traffic?"  503 when the
                       database is configured but unreachable.

Redis is not critical for readiness: without it, notifications degrade
but progress, grading and enrollment keep working.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response, status
from sqlalchemy import text

from app.db.engine import engine
from app.db.redis import redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _check_redis() -> str:
    if redis_pool is None:
        return "not_configured"
    try:
        await redis_pool.ping()  # type: ignore[misc]
    except Exception:
        logger.warning("Redis health check failed", exc_info=True)
        return "degraded"
    return "ok"


async def _check_database() -> str:
    if engine is None:
        return "not_configured"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Database health check failed", exc_info=True)
        return "degraded"
    return "ok"


@router.get("/health")
async def health() -> dict:
    checks = {"redis": await _check_redis(), "database": await _check_database()}
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if await _check_database() == "degraded":
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)
