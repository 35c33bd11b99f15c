"""Liveness and readiness probes.

  /health  the process is up; reports dependency status but always 200,
           so a degraded dependency never gets the container restarted.
  /ready   503 while a configured backing service (database, Redis) is
           unreachable, taking the instance out of load-balancer rotation.
"""

from __future__ import annotations

from fastapi import APIRouter, Response, status
from fastapi.responses import JSONResponse

from lms.db.engine import engine, ping_database
from lms.db.redis import ping_redis, redis_pool

router = APIRouter(tags=["health"])


async def _checks() -> dict[str, str]:
    checks: dict[str, str] = {}
    if engine is None:
        checks["database"] = "not_configured"
    else:
        checks["database"] = "ok" if await ping_database() else "down"
    if redis_pool is None:
        checks["redis"] = "not_configured"
    else:
        checks["redis"] = "ok" if await ping_redis() else "down"
    return checks


@router.get("/health")
async def health() -> dict:
    checks = await _checks()
    overall = "degraded" if "down" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    checks = await _checks()
    if "down" in checks.values():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "checks": checks},
        )
    return JSONResponse(content={"status": "ready", "checks": checks})
