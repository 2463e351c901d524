"""GET /health — liveness and rate limiter occupancy."""

from __future__ import annotations

import time

from fastapi import APIRouter

from coursegate import __version__
from coursegate.api.dependencies import RateLimiterDep
from coursegate.api.schemas import HealthResponse

router = APIRouter(tags=["health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Daemon health check")
async def health(limiter: RateLimiterDep) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=__version__,
        uptime_seconds=round(time.time() - _start_time, 2),
        rate_limit_entries=len(limiter),
    )
