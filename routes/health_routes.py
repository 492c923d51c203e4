"""
Health check endpoint.

GET /health — reports whether the verification sweeper is running.
Rules:
- Sweeper running → "healthy" (200)
- Sweeper stopped → "degraded" (200). Requests still work and expiry is
  still enforced lazily, but stale sessions accumulate until restart.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from dependencies import get_verification_store
from services.verification_store import VerificationSessionStore

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(
    store: VerificationSessionStore = Depends(get_verification_store),
) -> JSONResponse:
    running = store.sweeper_running

    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy" if running else "degraded",
            "checks": {"sweeper": "ok" if running else "stopped"},
            "sessions": len(store),
        },
    )
