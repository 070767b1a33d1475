"""Health check endpoints for cacheaside.

Provides Kubernetes-compatible liveness and readiness probes:
- /health/live  - Liveness probe (always returns OK if process is running)
- /health/ready - Readiness probe (checks database and Redis connectivity)
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from cacheaside.cache.redis import RedisStore, get_redis
from cacheaside.persistence.db import health_check as db_health_check

router = APIRouter(prefix="/health", tags=["health"])

CHECK_TIMEOUT = 5.0  # seconds


class HealthStatus(str, Enum):
    """Health check status."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a single component."""

    name: str
    status: HealthStatus
    latency_ms: float
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        result: dict[str, Any] = {
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            result["message"] = self.message
        return result


async def _run_check(name: str, check: Callable[[], Awaitable[bool]]) -> ComponentHealth:
    """Run one connectivity check with a timeout."""
    start = time.monotonic()
    try:
        healthy = await asyncio.wait_for(check(), timeout=CHECK_TIMEOUT)
        message = None if healthy else f"{name} check failed"
    except asyncio.TimeoutError:
        healthy = False
        message = f"{name} check timed out"
    latency = (time.monotonic() - start) * 1000
    return ComponentHealth(
        name=name,
        status=HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY,
        latency_ms=latency,
        message=message,
    )


async def check_redis() -> ComponentHealth:
    """Check Redis connectivity."""

    async def ping() -> bool:
        return await RedisStore(await get_redis()).ping()

    return await _run_check("redis", ping)


async def check_database() -> ComponentHealth:
    """Check database connectivity."""
    return await _run_check("database", db_health_check)


@router.get("/live")
async def live() -> dict[str, str]:
    """Liveness probe.

    Returns OK if the process is running.
    """
    return {"status": "ok"}


@router.get("/ready")
async def ready() -> JSONResponse:
    """Readiness probe.

    Returns 200 if Redis and the database are reachable, 503 otherwise.
    """
    components = await asyncio.gather(check_redis(), check_database())

    healthy = all(c.status == HealthStatus.HEALTHY for c in components)
    overall = HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY

    return JSONResponse(
        content={
            "status": overall.value,
            "checks": {c.name: c.to_dict() for c in components},
        },
        status_code=200 if healthy else 503,
    )
